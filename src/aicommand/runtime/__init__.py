"""Approval of tool calls before they run."""

from aicommand.runtime.errors import ApprovalInterruptedError, RuntimeSafetyError

__all__ = [
    "ApprovalInterruptedError",
    "RuntimeSafetyError",
]
