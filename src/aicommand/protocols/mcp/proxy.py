"""ProxySession — bridges a local stdio client to a remote HTTP provider.

Every inbound frame is forwarded verbatim through an :class:`HttpTransport`
and the remote reply is handed back unchanged.  The session satisfies
:class:`MessageHandler`, so :func:`serve_stdio` can serve it directly.
"""

from __future__ import annotations

import logging
from typing import Any

from aicommand.protocols.errors import INTERNAL_ERROR, INVALID_REQUEST, TransportError
from aicommand.protocols.mcp.models import JsonRpcError, JsonRpcResponse
from aicommand.protocols.mcp.transport import HttpTransport, MCPTransport

logger = logging.getLogger(__name__)


class ProxySession:
    """Forwards JSON-RPC frames to *url*."""

    def __init__(self, url: str, transport: MCPTransport | None = None) -> None:
        self.url = url
        self._transport = transport or HttpTransport(url)
        self._connected = False

    async def __aenter__(self) -> ProxySession:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._connected:
            self._connected = False
            await self._transport.close()

    async def handle_message(self, frame: Any) -> dict[str, Any] | None:
        if not isinstance(frame, dict):
            return _error(None, INVALID_REQUEST, "Invalid Request")

        request_id = frame.get("id")
        logger.info("Proxying %s to %s", frame.get("method", "<response>"), self.url)
        try:
            if not self._connected:
                await self._transport.connect()
                self._connected = True
            await self._transport.send(frame)
            if "id" not in frame:
                return None
            return await self._transport.receive()
        except TransportError as exc:
            logger.error("Proxy error: %s", exc)
            if "id" not in frame:
                return None
            return _error(request_id, INTERNAL_ERROR, str(exc))


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    if not isinstance(request_id, (int, str)) or isinstance(request_id, bool):
        request_id = None
    return JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message)).to_frame()
