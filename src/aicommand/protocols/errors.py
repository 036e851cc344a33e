"""Shared error types for the protocol layer."""

from __future__ import annotations

from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class ProtocolError(Exception):
    """Base error for all protocol-layer failures.

    ``code`` is the JSON-RPC error code to report when the error crosses
    the wire.  Servers fall back to ``INTERNAL_ERROR`` when it is ``None``.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(message)


class JsonRpcCallError(ProtocolError):
    """The remote side answered a request with a JSON-RPC error envelope."""

    def __init__(self, method: str, code: int, message: str, data: Any = None) -> None:
        self.method = method
        self.message = message
        self.data = data
        super().__init__(f"JSON-RPC error {code} from {method}: {message}", code=code)


class TransportError(ProtocolError):
    """The transport to a provider failed (spawn, broken pipe, HTTP, bad frame)."""


class ConfigurationError(ProtocolError):
    """Invalid tool/resource registration or an inconsistent provider setup."""


class ToolNotFoundError(ProtocolError):
    """Requested tool does not exist in the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}", code=INVALID_PARAMS)


class ResourceNotFoundError(ProtocolError):
    """Requested resource URI is not registered."""

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Unknown resource: {uri}", code=INVALID_PARAMS)


class ToolExecutionError(ProtocolError):
    """A tool invocation failed at the provider side.

    Tool callables may raise or return this to report a recoverable failure
    back to the model as an error-flagged result.
    """

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Tool execution failed: {name}" + (f": {detail}" if detail else ""))
