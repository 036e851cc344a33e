"""MCPServer — the server side of a protocol session.

Holds a method-handler table and turns inbound JSON-RPC frames into
handler invocations and outbound response/error frames.  The same server
object can be reached in-process (:class:`InProcessTransport`) or served
over stdio with :func:`serve_stdio`.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from aicommand import __version__
from aicommand.protocols.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    ProtocolError,
)
from aicommand.protocols.mcp.models import PROTOCOL_VERSION, JsonRpcError, JsonRpcResponse
from aicommand.protocols.mcp.registry import ResourceRegistry, ToolCallable, ToolRegistry
from aicommand.protocols.mcp.transport import STREAM_LIMIT, MessageHandler

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Any]


class MCPServer:
    """A tool provider speaking the MCP subset of JSON-RPC 2.0.

    Usage::

        server = MCPServer("demo")

        @server.tool("add-numbers", "Adds two numbers", schema)
        def add(args):
            return str(args["num1"] + args["num2"])

        reply = await server.handle_message(frame)
    """

    def __init__(self, name: str, version: str = __version__) -> None:
        self.name = name
        self.version = version
        self.tools = ToolRegistry()
        self.resources = ResourceRegistry()
        self._handlers: dict[str, Handler] = {}
        self._notification_handlers: dict[str, Handler] = {}

        self.register_handler("initialize", self._initialize)
        self.register_handler("ping", lambda _params: {})
        self.register_handler("tools/list", lambda _params: {"tools": self.tools.list_tools()})
        self.register_handler("tools/call", self._call_tool)
        self.register_handler(
            "resources/list", lambda _params: {"resources": self.resources.list_resources()}
        )
        self.register_handler("resources/read", self._read_resource)
        self.register_notification_handler("notifications/initialized", self._initialized)

    # -- registration -------------------------------------------------------

    def register_handler(self, method: str, handler: Handler) -> None:
        self._handlers[method] = handler

    def register_notification_handler(self, method: str, handler: Handler) -> None:
        self._notification_handlers[method] = handler

    def register_tool(self, definition: dict[str, Any]) -> None:
        self.tools.register_tool(definition)

    def register_resource(self, definition: dict[str, Any]) -> None:
        self.resources.register_resource(definition)

    def tool(
        self,
        name: str,
        description: str = "",
        input_schema: dict[str, Any] | None = None,
    ) -> Callable[[ToolCallable], ToolCallable]:
        """Decorator form of :meth:`register_tool`."""

        def decorator(func: ToolCallable) -> ToolCallable:
            self.register_tool(
                {
                    "name": name,
                    "description": description or (func.__doc__ or "").strip(),
                    "inputSchema": input_schema,
                    "callable": func,
                }
            )
            return func

        return decorator

    # -- dispatch -----------------------------------------------------------

    async def handle_message(self, frame: Any) -> dict[str, Any] | None:
        """Process one inbound frame; return the reply frame or ``None``."""
        logger.debug("%s received %s", self.name, frame)

        if not isinstance(frame, dict) or frame.get("jsonrpc") != "2.0":
            return _error_frame(_frame_id(frame), INVALID_REQUEST, "Invalid Request")

        method = frame.get("method")
        if "id" not in frame:
            if isinstance(method, str):
                await self._process_notification(method, frame.get("params"))
            else:
                logger.warning("%s: dropping frame without id or method", self.name)
            return None

        request_id = frame["id"]
        if not isinstance(request_id, (int, str)) or isinstance(request_id, bool):
            return _error_frame(None, INVALID_REQUEST, "Invalid Request: bad id")
        if not isinstance(method, str):
            return _error_frame(request_id, INVALID_REQUEST, "Invalid Request: missing method")

        params = frame.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return _error_frame(request_id, INVALID_PARAMS, "Invalid params: expected an object")

        handler = self._handlers.get(method)
        if handler is None:
            return _error_frame(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        try:
            result = handler(params)
            if inspect.isawaitable(result):
                result = await result
        except ProtocolError as exc:
            return _error_frame(request_id, exc.code or INTERNAL_ERROR, str(exc))
        except Exception as exc:
            logger.error("%s: error handling %s: %s", self.name, method, exc)
            return _error_frame(request_id, INTERNAL_ERROR, str(exc) or exc.__class__.__name__)

        if not isinstance(result, dict):
            result = {}
        return JsonRpcResponse(id=request_id, result=result).to_frame()

    async def _process_notification(self, method: str, params: Any) -> None:
        handler = self._notification_handlers.get(method)
        if handler is None:
            logger.warning("No handler registered for notification method: %s", method)
            return
        try:
            result = handler(params if isinstance(params, dict) else {})
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.error("%s: notification handler %s failed: %s", self.name, method, exc)

    # -- built-in methods ---------------------------------------------------

    def _initialize(self, _params: dict[str, Any]) -> dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {
                "tools": {"listChanged": False},
                "resources": {"subscribe": False, "listChanged": False},
            },
            "serverInfo": {"name": self.name, "version": self.version},
        }

    def _initialized(self, _params: dict[str, Any]) -> None:
        logger.debug("%s: client finished initialization", self.name)

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise ProtocolError("Invalid params: 'name' is required", code=INVALID_PARAMS)
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise ProtocolError("Invalid params: 'arguments' must be an object", code=INVALID_PARAMS)
        result = await self.tools.call_tool(name, arguments)
        return result.to_payload()

    async def _read_resource(self, params: dict[str, Any]) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str):
            raise ProtocolError("Invalid params: 'uri' is required", code=INVALID_PARAMS)
        return {"contents": await self.resources.read_resource(uri)}


def _frame_id(frame: Any) -> int | str | None:
    if isinstance(frame, dict):
        value = frame.get("id")
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return value
    return None


def _error_frame(request_id: int | str | None, code: int, message: str) -> dict[str, Any]:
    return JsonRpcResponse(id=request_id, error=JsonRpcError(code=code, message=message)).to_frame()


# ---------------------------------------------------------------------------
# Stdio server loop
# ---------------------------------------------------------------------------


async def serve_stream(
    handler: MessageHandler,
    reader: asyncio.StreamReader,
    write: Callable[[str], Awaitable[None]],
) -> None:
    """Read newline-delimited frames from *reader* until EOF and answer them.

    A line longer than the reader's limit is answered with an error frame
    and skipped.
    """
    while True:
        reply: dict[str, Any] | None
        try:
            line = await reader.readline()
        except ValueError as exc:
            logger.warning("Dropping oversized frame: %s", exc)
            reply = _error_frame(None, INVALID_REQUEST, f"Invalid Request: frame too large ({exc})")
            await write(json.dumps(reply) + "\n")
            continue
        if not line:
            break
        if not line.strip():
            continue
        try:
            frame = json.loads(line)
        except json.JSONDecodeError as exc:
            reply = _error_frame(None, PARSE_ERROR, f"Parse error: {exc}")
        else:
            reply = await handler.handle_message(frame)
        if reply is not None:
            await write(json.dumps(reply) + "\n")


async def serve_stdio(handler: MessageHandler) -> None:
    """Serve *handler* over this process's stdin/stdout."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    async def write(line: str) -> None:
        sys.stdout.write(line)
        sys.stdout.flush()

    logger.info("Serving MCP over stdio")
    await serve_stream(handler, reader, write)
