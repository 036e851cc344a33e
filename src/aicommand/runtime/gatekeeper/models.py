"""Data models for the approval gate."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ApprovalDecision(str, Enum):
    """The user's answer to a pending tool call."""

    ALLOW_ONCE = "allow_once"
    ALWAYS_ALLOW = "always_allow"
    DENY = "deny"

    @property
    def allows(self) -> bool:
        return self is not ApprovalDecision.DENY


class ApprovalRequest(BaseModel):
    """A tool call waiting for the user's go-ahead."""

    tool_name: str
    provider: str = Field(default="", description="Name of the provider that owns the tool.")
    arguments: dict[str, Any] = Field(default_factory=dict)


class ApprovalState(BaseModel):
    """Per-agent-loop approval state.

    ``needs_approval`` only ever goes from ``True`` to ``False``.
    """

    needs_approval: bool = True

    def grant_always(self) -> None:
        self.needs_approval = False
