"""Bounded tool-calling rounds over a model backend."""

from aicommand.core.agent.errors import MaxRoundsExceededError
from aicommand.core.agent.loop import (
    DEFAULT_MAX_ROUNDS,
    DENIED_MESSAGE,
    AgentLoop,
    AgentState,
    is_exit_command,
    tool_response_payload,
)
from aicommand.core.agent.media import MediaHandler, TempFileMediaHandler, decode_base64_data

__all__ = [
    "DEFAULT_MAX_ROUNDS",
    "DENIED_MESSAGE",
    "AgentLoop",
    "AgentState",
    "MaxRoundsExceededError",
    "MediaHandler",
    "TempFileMediaHandler",
    "decode_base64_data",
    "is_exit_command",
    "tool_response_payload",
]
