"""MCP sessions, transports, and the merged tool namespace."""

from aicommand.protocols.aggregator import SessionAggregator, ToolDescriptor, sanitize_schema
from aicommand.protocols.errors import (
    ConfigurationError,
    JsonRpcCallError,
    ProtocolError,
    ResourceNotFoundError,
    ToolExecutionError,
    ToolNotFoundError,
    TransportError,
)
from aicommand.protocols.provider import ToolRouter

__all__ = [
    "ConfigurationError",
    "JsonRpcCallError",
    "ProtocolError",
    "ResourceNotFoundError",
    "SessionAggregator",
    "ToolDescriptor",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ToolRouter",
    "TransportError",
    "sanitize_schema",
]
