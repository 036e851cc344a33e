"""Conversation model and model-backend interface."""

from aicommand.core.interface.client import LiteLLMBackend, ModelBackend
from aicommand.core.interface.config import ModelConfig
from aicommand.core.interface.errors import BackendError, HistoryError
from aicommand.core.interface.models import (
    ConversationHistory,
    FileDataPart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    Message,
    Part,
    TextPart,
)
from aicommand.core.interface.transpiler import Transpiler

__all__ = [
    "BackendError",
    "ConversationHistory",
    "FileDataPart",
    "FunctionCallPart",
    "FunctionResponsePart",
    "HistoryError",
    "InlineDataPart",
    "LiteLLMBackend",
    "Message",
    "ModelBackend",
    "ModelConfig",
    "Part",
    "TextPart",
    "Transpiler",
]
