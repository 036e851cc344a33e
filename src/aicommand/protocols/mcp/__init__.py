"""JSON-RPC sessions between the agent and tool providers."""

from aicommand.protocols.mcp.client import MCPClient
from aicommand.protocols.mcp.models import (
    CallToolResult,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    MCPResourceDef,
    MCPToolDef,
)
from aicommand.protocols.mcp.proxy import ProxySession
from aicommand.protocols.mcp.registry import ResourceRegistry, ToolRegistry
from aicommand.protocols.mcp.server import MCPServer, serve_stdio
from aicommand.protocols.mcp.transport import (
    HttpTransport,
    InProcessTransport,
    MCPTransport,
    MessageHandler,
    StdioTransport,
    create_transport,
)

__all__ = [
    "CallToolResult",
    "HttpTransport",
    "InProcessTransport",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MCPClient",
    "MCPResourceDef",
    "MCPServer",
    "MCPToolDef",
    "MCPTransport",
    "MessageHandler",
    "ProxySession",
    "ResourceRegistry",
    "StdioTransport",
    "ToolRegistry",
    "create_transport",
    "serve_stdio",
]
