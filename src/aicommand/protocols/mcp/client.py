"""MCPClient — the client side of a protocol session.

Implements the handshake (``initialize``), tool discovery and execution
(``tools/list``, ``tools/call``) and resource access over an
:class:`MCPTransport`.
"""

from __future__ import annotations

import logging
from typing import Any

from aicommand import __version__
from aicommand.protocols.errors import JsonRpcCallError, ProtocolError, TransportError
from aicommand.protocols.mcp.models import (
    PROTOCOL_VERSION,
    CallToolResult,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    MCPResourceDef,
    MCPToolDef,
)
from aicommand.protocols.mcp.transport import MCPTransport

logger = logging.getLogger(__name__)


class MCPClient:
    """Async context manager holding one session with one provider.

    Usage::

        transport = StdioTransport("npx", ["@mcp/filesystem", "/tmp"])
        async with MCPClient("fs", transport) as client:
            tools = await client.list_tools()
            result = await client.call_tool("read_file", {"path": "/tmp/x"})
    """

    def __init__(self, name: str, transport: MCPTransport) -> None:
        self.name = name
        self._transport = transport
        self._connected = False
        self._next_id = 1
        self.server_info: dict[str, Any] = {}

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect the transport and perform the initialize handshake."""
        try:
            await self._transport.connect()
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"{self.name}: {exc}") from exc
        self._connected = True
        self.server_info = await self.initialize()
        await self.send_notification("notifications/initialized")

    async def close(self) -> None:
        """Close the underlying transport."""
        if self._connected:
            self._connected = False
            await self._transport.close()

    # -- explicit method table -------------------------------------------

    async def initialize(self) -> dict[str, Any]:
        return await self.send_request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": "aicommand", "version": __version__},
            },
        )

    async def ping(self) -> None:
        await self.send_request("ping")

    async def list_tools(self) -> list[MCPToolDef]:
        result = await self.send_request("tools/list")
        return [MCPToolDef.model_validate(raw) for raw in result.get("tools", [])]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> CallToolResult:
        result = await self.send_request("tools/call", {"name": name, "arguments": arguments or {}})
        return CallToolResult.model_validate(result)

    async def list_resources(self) -> list[MCPResourceDef]:
        result = await self.send_request("resources/list")
        return [MCPResourceDef.model_validate(raw) for raw in result.get("resources", [])]

    async def read_resource(self, uri: str) -> list[dict[str, Any]]:
        result = await self.send_request("resources/read", {"uri": uri})
        contents: list[dict[str, Any]] = result.get("contents", [])
        return contents

    # -- generic escape hatch ----------------------------------------------

    async def send_request(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a JSON-RPC request and wait for the matching response.

        Returns the ``result`` member or raises :class:`JsonRpcCallError`
        when the provider answers with an error envelope.
        """
        if not self._connected:
            msg = f"Client {self.name!r} not connected"
            raise RuntimeError(msg)

        request_id = self._next_id
        self._next_id += 1

        request = JsonRpcRequest(method=method, id=request_id, params=params or {})
        logger.debug("%s -> %s (id=%s)", self.name, method, request_id)
        await self._transport.send(request.model_dump())

        while True:
            raw = await self._transport.receive()
            if "id" not in raw and "method" in raw:
                logger.debug("%s: ignoring notification %s", self.name, raw.get("method"))
                continue
            break

        try:
            response = JsonRpcResponse.model_validate(raw)
        except ValueError as exc:
            raise ProtocolError(f"{self.name}: malformed response frame: {exc}") from exc

        if response.id != request_id:
            msg = f"{self.name}: response id {response.id!r} does not match request id {request_id}"
            raise ProtocolError(msg)

        if response.error is not None:
            raise JsonRpcCallError(
                method,
                response.error.code,
                response.error.message,
                response.error.data,
            )
        return response.result or {}

    async def send_notification(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a frame without an id; no reply is expected."""
        if not self._connected:
            msg = f"Client {self.name!r} not connected"
            raise RuntimeError(msg)
        notification = JsonRpcNotification(method=method, params=params or {})
        await self._transport.send(notification.model_dump())
