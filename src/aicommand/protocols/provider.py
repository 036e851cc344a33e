"""ToolRouter protocol — what the agent loop needs from the tool side.

:class:`~aicommand.protocols.aggregator.SessionAggregator` satisfies it;
tests can supply any object with the same three methods.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolRouter(Protocol):
    """Exposes a merged tool namespace and routes calls into it."""

    def merged_tool_schema(self) -> list[dict[str, Any]]:
        """Return function declarations for the model.

        Each dict follows the shape::

            {
                "name": "...",
                "description": "...",
                "parameters": { ... }   # JSON Schema
            }
        """
        ...

    def owner_of(self, name: str) -> str | None:
        """Name of the provider exposing *name*, or ``None`` if unknown."""
        ...

    async def invoke(self, name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool by name and return its result."""
        ...
