"""In-memory tool and resource registries backing an :class:`MCPServer`.

Tool callables receive the ``arguments`` mapping of a ``tools/call``
request.  Whatever they return is normalized into a :class:`CallToolResult`
so that a failing tool is reported to the model instead of aborting the
session.
"""

from __future__ import annotations

import base64
import inspect
import json
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from aicommand.protocols.errors import (
    ConfigurationError,
    ResourceNotFoundError,
    ToolExecutionError,
    ToolNotFoundError,
)
from aicommand.protocols.mcp.models import CallToolResult, MCPResourceDef, MCPToolDef, TextContent

logger = logging.getLogger(__name__)

ToolCallable = Callable[[dict[str, Any]], Any]


@dataclass(frozen=True)
class RegisteredTool:
    definition: MCPToolDef
    callable: ToolCallable


@dataclass(frozen=True)
class RegisteredResource:
    definition: MCPResourceDef
    text: str | None = None
    reader: Callable[[], Any] | None = field(default=None)


class ToolRegistry:
    """Maps tool names to their definition and callable."""

    def __init__(self) -> None:
        self._tools: dict[str, RegisteredTool] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def register_tool(self, definition: Mapping[str, Any]) -> None:
        """Register a tool from a ``{name, description, inputSchema, callable}`` mapping."""
        name = definition.get("name")
        func = definition.get("callable")
        if not name or not isinstance(name, str):
            msg = "Invalid tool definition: 'name' is required"
            raise ConfigurationError(msg)
        if not callable(func):
            msg = f"Invalid tool definition for {name!r}: 'callable' must be callable"
            raise ConfigurationError(msg)
        if name in self._tools:
            msg = f"Tool {name!r} is already registered"
            raise ConfigurationError(msg)

        schema = definition.get("inputSchema") or {"type": "object", "properties": {}}
        tool_def = MCPToolDef(
            name=name,
            description=definition.get("description") or "",
            input_schema=dict(schema),
        )
        self._tools[name] = RegisteredTool(definition=tool_def, callable=func)
        logger.debug("Registered tool %s", name)

    def list_tools(self) -> list[dict[str, Any]]:
        # Pagination is not supported; the full catalog is returned.
        return [tool.definition.model_dump(by_alias=True) for tool in self._tools.values()]

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Invoke *name* and normalize its return value.

        Raises :class:`ToolNotFoundError` for unknown names; failures inside
        the callable come back as an error-flagged result.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        try:
            value = tool.callable(dict(arguments or {}))
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            logger.warning("Tool %s failed: %s", name, exc)
            return CallToolResult.from_text(_failure_text(exc), is_error=True)

        return normalize_tool_result(value)


def normalize_tool_result(value: Any) -> CallToolResult:
    """Coerce a tool callable's return value into a :class:`CallToolResult`."""
    if isinstance(value, CallToolResult):
        return value
    if isinstance(value, BaseException):
        return CallToolResult.from_text(_failure_text(value), is_error=True)
    if isinstance(value, (str, Mapping)):
        return CallToolResult(content=[_content_item(value)])
    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return CallToolResult(content=[_content_item(item) for item in value])
    return CallToolResult(content=[_content_item(value)])


def _failure_text(exc: BaseException) -> str:
    """The text a failing tool reports to the model."""
    if isinstance(exc, ToolExecutionError) and exc.detail:
        return exc.detail
    return str(exc) or exc.__class__.__name__


def _content_item(value: Any) -> dict[str, Any]:
    if isinstance(value, str):
        return TextContent(text=value).model_dump()
    if isinstance(value, Mapping):
        if "type" in value:
            return dict(value)
        return TextContent(text=json.dumps(value, default=str)).model_dump()
    if value is None:
        return TextContent(text="").model_dump()
    if isinstance(value, (list, tuple)):
        return TextContent(text=json.dumps(value, default=str)).model_dump()
    return TextContent(text=str(value)).model_dump()


class ResourceRegistry:
    """Maps resource URIs to static text or a reader callable."""

    def __init__(self) -> None:
        self._resources: dict[str, RegisteredResource] = {}

    def __len__(self) -> int:
        return len(self._resources)

    def register_resource(self, definition: Mapping[str, Any]) -> None:
        """Register ``{name, uri, description?, mimeType?, text? | reader?}``."""
        name = definition.get("name")
        uri = definition.get("uri")
        if not name or not uri:
            msg = "Invalid resource definition: 'name' and 'uri' are required"
            raise ConfigurationError(msg)
        reader = definition.get("reader")
        if reader is not None and not callable(reader):
            msg = f"Invalid resource definition for {uri!r}: 'reader' must be callable"
            raise ConfigurationError(msg)
        if uri in self._resources:
            msg = f"Resource {uri!r} is already registered"
            raise ConfigurationError(msg)

        resource_def = MCPResourceDef(
            name=name,
            uri=uri,
            description=definition.get("description") or "",
            mime_type=definition.get("mimeType") or "text/plain",
        )
        self._resources[uri] = RegisteredResource(
            definition=resource_def,
            text=definition.get("text"),
            reader=reader,
        )

    def list_resources(self) -> list[dict[str, Any]]:
        return [res.definition.model_dump(by_alias=True) for res in self._resources.values()]

    async def read_resource(self, uri: str) -> list[dict[str, Any]]:
        resource = self._resources.get(uri)
        if resource is None:
            raise ResourceNotFoundError(uri)

        data: Any = resource.text
        if resource.reader is not None:
            data = resource.reader()
            if inspect.isawaitable(data):
                data = await data

        mime_type = resource.definition.mime_type
        if isinstance(data, (bytes, bytearray)):
            blob = base64.b64encode(bytes(data)).decode("ascii")
            return [{"uri": uri, "mimeType": mime_type, "blob": blob}]
        return [{"uri": uri, "mimeType": mime_type, "text": "" if data is None else str(data)}]
