"""Transpiler protocol — converts between the conversation model and a backend format.

A backend serializes :class:`ConversationHistory` into its request payload
and turns its raw response into candidate model messages.
"""

from typing import Any, Protocol, runtime_checkable

from aicommand.core.interface.models import ConversationHistory, Message


@runtime_checkable
class Transpiler(Protocol):
    """Protocol for backend-specific message format transpilers."""

    def to_provider(self, history: ConversationHistory) -> dict[str, Any]:
        """Convert a conversation history to a backend-specific payload."""
        ...

    def from_provider(self, response: dict[str, Any]) -> list[Message]:
        """Convert a backend's raw response into candidate model messages.

        Candidates are returned in the backend's order; callers usually
        only look at the first.
        """
        ...
