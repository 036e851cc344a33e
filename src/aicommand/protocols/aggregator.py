"""SessionAggregator — one merged tool namespace over many provider sessions."""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, ValidationError

from aicommand.protocols.errors import (
    ConfigurationError,
    JsonRpcCallError,
    ProtocolError,
    ToolNotFoundError,
    TransportError,
)
from aicommand.protocols.mcp.client import MCPClient
from aicommand.protocols.mcp.models import CallToolResult
from aicommand.protocols.mcp.transport import InProcessTransport, create_transport
from aicommand.utils.telemetry import ATTR_TOOL_NAME, ATTR_TOOL_PROVIDER, get_tracer

if TYPE_CHECKING:
    from aicommand.config import ProviderConfig
    from aicommand.protocols.mcp.server import MCPServer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

# Some model backends reject function declarations without parameters.
PLACEHOLDER_PROPERTY = "dummy"

# Failures that only disqualify the provider that raised them.
_PROVIDER_FAULTS = (ProtocolError, ValidationError)


class ToolDescriptor(BaseModel):
    """A tool in the merged namespace, tagged with its owning provider."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(default_factory=dict)
    provider: str

    def to_function_declaration(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": sanitize_schema(self.input_schema),
        }


def sanitize_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Return a backend-friendly copy of a tool input schema.

    Drops ``$schema``/``additionalProperties`` and fills an empty
    ``properties`` object with a single inert string property.
    """
    params = copy.deepcopy(schema) if schema else {}
    params.pop("$schema", None)
    params.pop("additionalProperties", None)
    params["type"] = "object"
    if not params.get("properties"):
        params["properties"] = {PLACEHOLDER_PROPERTY: {"type": "string"}}
        params.pop("required", None)
    return params


class SessionAggregator:
    """Owns a session per provider and routes tool calls to the right one.

    Usage::

        async with SessionAggregator(store.active(), builtins=[example]) as tools:
            schema = tools.merged_tool_schema()
            result = await tools.invoke("add-numbers", {"num1": 2, "num2": 2})
    """

    def __init__(
        self,
        providers: Sequence[ProviderConfig] = (),
        *,
        builtins: Sequence[MCPServer] = (),
        skip_unavailable: bool = True,
    ) -> None:
        self._clients: list[MCPClient] = [
            MCPClient(server.name, InProcessTransport(server)) for server in builtins
        ]
        for provider in providers:
            if not provider.is_active:
                logger.debug("Skipping inactive provider %s", provider.name)
                continue
            self._clients.append(MCPClient(provider.name, create_transport(provider.server)))
        self._skip_unavailable = skip_unavailable
        self._sessions: dict[str, MCPClient] = {}
        self._tools: dict[str, ToolDescriptor] = {}
        self._owners: dict[str, MCPClient] = {}

    async def __aenter__(self) -> SessionAggregator:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    @property
    def providers(self) -> list[str]:
        """Names of the providers that connected successfully."""
        return list(self._sessions)

    async def connect(self) -> None:
        """Open all sessions concurrently, then merge catalogs in order."""
        outcomes = await asyncio.gather(
            *(self._open(client) for client in self._clients),
            return_exceptions=True,
        )

        catalogs: list[tuple[MCPClient, list[ToolDescriptor]]] = []
        for client, outcome in zip(self._clients, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, _PROVIDER_FAULTS) and self._skip_unavailable:
                    logger.warning("Skipping provider %s: %s", client.name, outcome)
                    continue
                await self.close()
                raise outcome
            self._sessions[client.name] = client
            catalogs.append((client, outcome))

        try:
            for client, descriptors in catalogs:
                self.register(client, descriptors)
        except ConfigurationError:
            await self.close()
            raise

    async def _open(self, client: MCPClient) -> list[ToolDescriptor]:
        try:
            await client.connect()
            tool_defs = await client.list_tools()
        except BaseException:
            await client.close()
            raise
        return [
            ToolDescriptor(
                name=t.name,
                description=t.description,
                input_schema=t.input_schema,
                provider=client.name,
            )
            for t in tool_defs
        ]

    def register(self, client: MCPClient, descriptors: Sequence[ToolDescriptor]) -> None:
        """Add *descriptors* owned by *client*; a name already taken is fatal."""
        for descriptor in descriptors:
            existing = self._tools.get(descriptor.name)
            if existing is not None:
                msg = (
                    f"Duplicate tool {descriptor.name!r}: provided by both "
                    f"{existing.provider!r} and {descriptor.provider!r}"
                )
                raise ConfigurationError(msg)
            self._tools[descriptor.name] = descriptor
            self._owners[descriptor.name] = client
        logger.debug("Registered %d tool(s) from %s", len(descriptors), client.name)

    async def close(self) -> None:
        for client in self._clients:
            try:
                await client.close()
            except (OSError, ProtocolError) as exc:
                logger.warning("Error closing provider %s: %s", client.name, exc)
        self._sessions.clear()
        self._tools.clear()
        self._owners.clear()

    # -- tool namespace -----------------------------------------------------

    def tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def merged_tool_schema(self) -> list[dict[str, Any]]:
        """Function declarations for the model, in registration order."""
        return [tool.to_function_declaration() for tool in self._tools.values()]

    def owner_of(self, name: str) -> str | None:
        descriptor = self._tools.get(name)
        return descriptor.provider if descriptor else None

    async def invoke(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Forward a call to the owning session.

        Provider-side failures come back as error-flagged results.
        """
        client = self._owners.get(name)
        if client is None:
            raise ToolNotFoundError(name)

        with _tracer.start_as_current_span("tool.invoke") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            span.set_attribute(ATTR_TOOL_PROVIDER, client.name)
            try:
                return await client.call_tool(name, arguments)
            except JsonRpcCallError as exc:
                logger.warning("Tool %s on %s returned an error: %s", name, client.name, exc.message)
                return CallToolResult.from_text(exc.message, is_error=True)
            except TransportError as exc:
                logger.warning("Transport fault calling %s on %s: %s", name, client.name, exc)
                return CallToolResult.from_text(
                    f"Provider {client.name!r} is unavailable: {exc}", is_error=True
                )
            except (ProtocolError, ValidationError) as exc:
                logger.warning("Malformed reply calling %s on %s: %s", name, client.name, exc)
                return CallToolResult.from_text(
                    f"Provider {client.name!r} sent a malformed reply: {exc}", is_error=True
                )

    # -- resources ----------------------------------------------------------

    async def list_resources(self) -> list[dict[str, Any]]:
        """All resources across providers, tagged with ``provider``."""
        resources: list[dict[str, Any]] = []
        for name, client in self._sessions.items():
            try:
                entries = await client.list_resources()
            except (JsonRpcCallError, TransportError) as exc:
                logger.warning("Could not list resources of %s: %s", name, exc)
                continue
            resources.extend({**r.model_dump(by_alias=True), "provider": name} for r in entries)
        return resources

    async def read_resource(self, uri: str) -> list[dict[str, Any]]:
        """Read *uri* from the first provider that knows it."""
        for name, client in self._sessions.items():
            try:
                return await client.read_resource(uri)
            except JsonRpcCallError:
                logger.debug("Provider %s does not serve %s", name, uri)
        raise ProtocolError(f"Unknown resource: {uri}")
