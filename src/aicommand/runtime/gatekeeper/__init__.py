"""Human-in-the-loop approval of tool calls."""

from aicommand.runtime.gatekeeper.gatekeeper import (
    ApprovalGate,
    AutoApproveGatekeeper,
    CLIGatekeeper,
    Gatekeeper,
    parse_choice,
)
from aicommand.runtime.gatekeeper.models import ApprovalDecision, ApprovalRequest, ApprovalState

__all__ = [
    "ApprovalDecision",
    "ApprovalGate",
    "ApprovalRequest",
    "ApprovalState",
    "AutoApproveGatekeeper",
    "CLIGatekeeper",
    "Gatekeeper",
    "parse_choice",
]
