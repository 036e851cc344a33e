"""MCP models — JSON-RPC 2.0 frames and tool/resource payloads.

Implements the message format used by the Model Context Protocol for
handshake (``initialize``), tool discovery and execution (``tools/list``,
``tools/call``) and resource access (``resources/list``, ``resources/read``).
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_VERSION = "2024-11-05"

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    id: int | str
    params: dict[str, Any] = {}


class JsonRpcNotification(BaseModel):
    """A JSON-RPC 2.0 notification (a request without an id)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] = {}


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message.

    Exactly one of ``result`` / ``error`` is set.  ``id`` is ``None`` only for
    errors about frames whose id could not be read.
    """

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str | None
    result: dict[str, Any] | None = None
    error: JsonRpcError | None = None

    def to_frame(self) -> dict[str, Any]:
        """Serialize without the unused result/error member."""
        frame: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            frame["error"] = self.error.model_dump(exclude_none=True)
        else:
            frame["result"] = self.result if self.result is not None else {}
        return frame


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class MCPToolDef(BaseModel):
    """A tool definition as returned by ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )


class MCPResourceDef(BaseModel):
    """A resource descriptor as returned by ``resources/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    uri: str
    description: str = ""
    mime_type: str = Field(default="text/plain", alias="mimeType")


class TextContent(BaseModel):
    """Plain text item of a tool result."""

    type: Literal["text"] = "text"
    text: str


class CallToolResult(BaseModel):
    """Result payload of ``tools/call``.

    Content items are kept as plain JSON objects so that items of kinds this
    client does not model (audio, embedded resources) survive untouched.
    """

    model_config = ConfigDict(populate_by_name=True)

    content: list[dict[str, Any]] = []
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def from_text(cls, text: str, *, is_error: bool = False) -> CallToolResult:
        """Create a result with a single text item."""
        return cls(content=[TextContent(text=text).model_dump()], is_error=is_error)

    @property
    def text(self) -> str:
        """Concatenated text of all text items."""
        return "\n".join(
            str(item.get("text", "")) for item in self.content if item.get("type") == "text"
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
