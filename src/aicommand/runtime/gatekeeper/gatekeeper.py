"""Gatekeeper protocol, implementations, and the approval gate.

- ``Gatekeeper`` — runtime-checkable protocol for approval prompts.
- ``CLIGatekeeper`` — asks the user at the terminal.
- ``AutoApproveGatekeeper`` — always allows once (for testing/CI).
- ``ApprovalGate`` — applies approval mode and :class:`ApprovalState`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.markup import escape

from aicommand.runtime.errors import ApprovalInterruptedError
from aicommand.runtime.gatekeeper.models import ApprovalDecision, ApprovalRequest, ApprovalState
from aicommand.utils.terminal import TerminalReader, stdin_reader

logger = logging.getLogger(__name__)

_CHOICES = {
    "y": ApprovalDecision.ALLOW_ONCE,
    "a": ApprovalDecision.ALWAYS_ALLOW,
    "n": ApprovalDecision.DENY,
}


@runtime_checkable
class Gatekeeper(Protocol):
    """Decides whether a pending tool call should run."""

    async def request_approval(self, request: ApprovalRequest) -> ApprovalDecision:
        """Ask for approval and return the decision."""
        ...


class AutoApproveGatekeeper:
    """Always allows once. Used when no interactive gatekeeper is configured.

    Satisfies the :class:`Gatekeeper` protocol.
    """

    async def request_approval(self, request: ApprovalRequest) -> ApprovalDecision:
        logger.debug("AutoApproveGatekeeper: allowing %s", request.tool_name)
        return ApprovalDecision.ALLOW_ONCE


class CLIGatekeeper:
    """Prompts the user at the terminal.

    Satisfies the :class:`Gatekeeper` protocol.

    Answers come from a :class:`TerminalReader`, so waiting for one never
    blocks the event loop and a cancelled prompt does not strand a thread
    on stdin.  End of input or no answer within *timeout* raise
    :class:`ApprovalInterruptedError`; cancellation propagates.
    """

    def __init__(
        self,
        *,
        timeout: float = 300.0,
        console: Console | None = None,
        reader: TerminalReader | None = None,
    ) -> None:
        self._timeout = timeout
        self._console = console or Console()
        self._reader = reader or stdin_reader

    async def request_approval(self, request: ApprovalRequest) -> ApprovalDecision:
        self._print_summary(request)

        try:
            answer = await asyncio.wait_for(self._reader.readline(), timeout=self._timeout)
        except TimeoutError as exc:
            raise ApprovalInterruptedError(request.tool_name, "timed out") from exc
        except EOFError as exc:
            raise ApprovalInterruptedError(request.tool_name, "interrupted") from exc

        return parse_choice(answer)

    def _print_summary(self, request: ApprovalRequest) -> None:
        tool, provider = escape(request.tool_name), escape(request.provider)
        self._console.print(f'\nRun tool "[bold]{tool}[/bold]" from "[bold]{provider}[/bold]"?')
        if request.arguments:
            self._console.print(f"  Arguments: {request.arguments}", markup=False)
        self._console.print(
            "[yellow]Note:[/yellow] Running tools from untrusted servers could have unintended "
            "consequences. Review each action carefully before approving."
        )
        # The key letters are literal brackets, not style tags.
        self._console.print("  [y] Allow once  [a] Always allow  [n] Deny once", markup=False)
        self._console.print("  Run tool? [y/a/n] (y): ", end="", markup=False)


def parse_choice(answer: str) -> ApprovalDecision:
    """Map a typed answer to a decision; empty means allow once."""
    key = answer.strip().lower()[:1] or "y"
    return _CHOICES.get(key, ApprovalDecision.DENY)


class ApprovalGate:
    """Applies the approval policy for one agent loop.

    The gate is open when approval mode is disabled or after the user chose
    "always allow" once.
    """

    def __init__(self, gatekeeper: Gatekeeper | None = None, *, enabled: bool = True) -> None:
        self._gatekeeper = gatekeeper or AutoApproveGatekeeper()
        self.enabled = enabled
        self.state = ApprovalState()

    @property
    def needs_prompt(self) -> bool:
        return self.enabled and self.state.needs_approval

    async def check(self, request: ApprovalRequest) -> bool:
        """Return whether the call may run, prompting if needed."""
        if not self.needs_prompt:
            return True

        try:
            decision = await self._gatekeeper.request_approval(request)
        except ApprovalInterruptedError as exc:
            logger.info("%s", exc)
            return False

        if decision is ApprovalDecision.ALWAYS_ALLOW:
            self.state.grant_always()
        logger.debug("Approval for %s: %s", request.tool_name, decision.value)
        return decision.allows
