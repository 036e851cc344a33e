"""Tests for SessionAggregator and schema sanitizing."""

from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from aicommand.config import ProviderConfig
from aicommand.protocols.aggregator import (
    PLACEHOLDER_PROPERTY,
    SessionAggregator,
    ToolDescriptor,
    sanitize_schema,
)
from aicommand.protocols.errors import (
    ConfigurationError,
    ProtocolError,
    ToolNotFoundError,
    TransportError,
)
from aicommand.protocols.mcp.client import MCPClient
from aicommand.protocols.mcp.server import MCPServer


def _server(name: str, *tools: str, resource: str | None = None) -> MCPServer:
    server = MCPServer(name)
    for tool in tools:
        server.register_tool(
            {
                "name": tool,
                "description": f"{tool} from {name}",
                "inputSchema": {
                    "type": "object",
                    "properties": {"value": {"type": "string"}},
                    "required": ["value"],
                },
                "callable": lambda args, tool=tool: f"{tool}:{args.get('value')}",
            }
        )
    if resource:
        server.register_resource({"name": resource, "uri": resource, "text": f"from {name}"})
    return server


class TestSanitizeSchema:
    def test_empty_properties_get_placeholder(self) -> None:
        params = sanitize_schema({"type": "object", "properties": {}, "required": []})
        assert params == {
            "type": "object",
            "properties": {PLACEHOLDER_PROPERTY: {"type": "string"}},
        }

    def test_missing_schema_gets_placeholder(self) -> None:
        assert sanitize_schema({})["properties"] == {"dummy": {"type": "string"}}

    def test_drops_unsupported_keys(self) -> None:
        params = sanitize_schema(
            {
                "$schema": "http://json-schema.org/draft-07/schema#",
                "type": "object",
                "properties": {"a": {"type": "string"}},
                "additionalProperties": False,
            }
        )
        assert params == {"type": "object", "properties": {"a": {"type": "string"}}}

    def test_does_not_mutate_input(self) -> None:
        schema: dict[str, Any] = {"type": "object", "properties": {}}
        sanitize_schema(schema)
        assert schema == {"type": "object", "properties": {}}

    def test_descriptor_declaration(self) -> None:
        descriptor = ToolDescriptor(name="t", description="d", provider="p")
        assert descriptor.to_function_declaration() == {
            "name": "t",
            "description": "d",
            "parameters": {"type": "object", "properties": {"dummy": {"type": "string"}}},
        }


class TestConnect:
    async def test_merges_tools_in_provider_order(self) -> None:
        async with SessionAggregator(
            builtins=[_server("a", "one", "two"), _server("b", "three")]
        ) as tools:
            assert [t.name for t in tools.tools()] == ["one", "two", "three"]
            assert tools.providers == ["a", "b"]
            assert tools.owner_of("three") == "b"
            assert tools.owner_of("four") is None

    async def test_merged_schema(self) -> None:
        async with SessionAggregator(builtins=[_server("a", "one")]) as tools:
            [declaration] = tools.merged_tool_schema()
        assert declaration["name"] == "one"
        assert declaration["description"] == "one from a"
        assert declaration["parameters"]["required"] == ["value"]

    async def test_duplicate_tool_name_is_fatal(self) -> None:
        aggregator = SessionAggregator(builtins=[_server("a", "same"), _server("b", "same")])
        with pytest.raises(ConfigurationError, match="Duplicate tool 'same'.*'a' and 'b'"):
            await aggregator.connect()
        assert aggregator.tools() == []
        assert aggregator.providers == []

    async def test_inactive_providers_are_skipped(self) -> None:
        with patch("aicommand.protocols.aggregator.create_transport") as create:
            aggregator = SessionAggregator(
                [ProviderConfig(name="off", server="some-command", status="inactive")]
            )
        create.assert_not_called()
        await aggregator.connect()
        assert aggregator.providers == []

    async def test_unavailable_provider_is_skipped(self) -> None:
        providers = [ProviderConfig(name="broken", server="does-not-exist")]
        with patch.object(
            MCPClient, "connect", AsyncMock(side_effect=TransportError("cannot spawn"))
        ):
            aggregator = SessionAggregator(providers)
            await aggregator.connect()
        assert aggregator.providers == []
        await aggregator.close()

    async def test_unavailable_provider_fails_in_strict_mode(self) -> None:
        providers = [ProviderConfig(name="broken", server="does-not-exist")]
        with patch.object(
            MCPClient, "connect", AsyncMock(side_effect=TransportError("cannot spawn"))
        ):
            aggregator = SessionAggregator(providers, skip_unavailable=False)
            with pytest.raises(TransportError, match="cannot spawn"):
                await aggregator.connect()

    async def test_malformed_catalog_is_skipped(self) -> None:
        broken = _server("b", "two")
        broken.register_handler("tools/list", lambda _params: {"tools": "nope"})
        async with SessionAggregator(builtins=[_server("a", "one"), broken]) as tools:
            assert tools.providers == ["a"]
            assert [t.name for t in tools.tools()] == ["one"]

    async def test_malformed_catalog_fails_in_strict_mode(self) -> None:
        broken = _server("b", "two")
        broken.register_handler("tools/list", lambda _params: {"tools": "nope"})
        aggregator = SessionAggregator(builtins=[broken], skip_unavailable=False)
        with pytest.raises(ValidationError):
            await aggregator.connect()
        assert aggregator.providers == []

    async def test_mismatched_reply_is_skipped(self) -> None:
        providers = [ProviderConfig(name="confused", server="some-command")]
        with (
            patch.object(MCPClient, "connect", AsyncMock()),
            patch.object(MCPClient, "close", AsyncMock()),
            patch.object(
                MCPClient,
                "list_tools",
                AsyncMock(side_effect=ProtocolError("Response id 7 does not match request 2")),
            ),
        ):
            aggregator = SessionAggregator(providers)
            await aggregator.connect()
        assert aggregator.providers == []


class TestInvoke:
    async def test_routes_to_owner(self) -> None:
        async with SessionAggregator(builtins=[_server("a", "one"), _server("b", "two")]) as tools:
            result = await tools.invoke("two", {"value": "x"})
        assert result.text == "two:x"
        assert result.is_error is False

    async def test_unknown_tool_raises(self) -> None:
        async with SessionAggregator(builtins=[_server("a", "one")]) as tools:
            with pytest.raises(ToolNotFoundError):
                await tools.invoke("missing", {})

    async def test_provider_error_becomes_error_result(self) -> None:
        server = _server("a", "one")

        def reject(_params: dict[str, Any]) -> dict[str, Any]:
            raise ProtocolError("Invalid params: value", code=-32602)

        server.register_handler("tools/call", reject)
        async with SessionAggregator(builtins=[server]) as tools:
            result = await tools.invoke("one", {})
        assert result.is_error is True
        assert result.text == "Invalid params: value"

    async def test_transport_fault_becomes_error_result(self) -> None:
        async with SessionAggregator(builtins=[_server("a", "one")]) as tools:
            with patch.object(
                MCPClient, "call_tool", AsyncMock(side_effect=TransportError("pipe closed"))
            ):
                result = await tools.invoke("one", {"value": "x"})
        assert result.is_error is True
        assert "Provider 'a' is unavailable: pipe closed" in result.text

    async def test_malformed_result_becomes_error_result(self) -> None:
        server = _server("a", "one")
        server.register_handler("tools/call", lambda _params: {"content": "nope"})
        async with SessionAggregator(builtins=[server]) as tools:
            result = await tools.invoke("one", {"value": "x"})
        assert result.is_error is True
        assert "Provider 'a' sent a malformed reply" in result.text


class TestResources:
    async def test_list_resources_tags_provider(self) -> None:
        async with SessionAggregator(
            builtins=[_server("a", "one", resource="a://r"), _server("b", "two")]
        ) as tools:
            resources = await tools.list_resources()
        assert resources == [
            {
                "name": "a://r",
                "uri": "a://r",
                "description": "",
                "mimeType": "text/plain",
                "provider": "a",
            }
        ]

    async def test_read_resource_finds_owner(self) -> None:
        async with SessionAggregator(
            builtins=[_server("a", "one"), _server("b", "two", resource="b://r")]
        ) as tools:
            contents = await tools.read_resource("b://r")
        assert contents[0]["text"] == "from b"

    async def test_read_unknown_resource(self) -> None:
        async with SessionAggregator(builtins=[_server("a", "one")]) as tools:
            with pytest.raises(ProtocolError, match="Unknown resource: z://z"):
                await tools.read_resource("z://z")
