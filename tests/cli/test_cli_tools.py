"""Tests for ``aicommand tools`` and ``aicommand resources`` CLI commands."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

from click.testing import CliRunner

from aicommand.cli import main
from aicommand.config import ProviderStore
from aicommand.protocols.errors import TransportError
from aicommand.protocols.mcp.client import MCPClient


class TestToolsList:
    def test_lists_builtin_tools(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list"])

        assert result.exit_code == 0, result.output
        assert "add-numbers" in result.output
        assert "greet-user" in result.output

    def test_json_output(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list", "--format", "json"])

        assert result.exit_code == 0, result.output
        tools = json.loads(result.output)
        assert [t["name"] for t in tools] == ["add-numbers", "greet-user"]
        assert {t["provider"] for t in tools} == {"example"}

    def test_no_tools(self) -> None:
        result = CliRunner().invoke(main, ["tools", "list", "--skip-builtin"])

        assert result.exit_code == 0
        assert "No tools discovered" in result.output

    def test_unreachable_server_is_skipped(self) -> None:
        ProviderStore().add("broken", "does-not-exist --flag")
        with patch.object(
            MCPClient, "connect", AsyncMock(side_effect=TransportError("cannot start"))
        ):
            result = CliRunner().invoke(main, ["tools", "list", "--skip-builtin"])

        assert result.exit_code == 0
        assert "No tools discovered" in result.output


class TestResources:
    def test_list(self) -> None:
        result = CliRunner().invoke(main, ["resources", "list"])

        assert result.exit_code == 0, result.output
        assert "example://greeting" in result.output

    def test_read(self) -> None:
        result = CliRunner().invoke(main, ["resources", "read", "example://greeting"])

        assert result.exit_code == 0, result.output
        assert "Hello from the example MCP server!" in result.output

    def test_read_unknown(self) -> None:
        result = CliRunner().invoke(main, ["resources", "read", "example://nope"])

        assert result.exit_code == 1
        assert "Unknown resource: example://nope" in result.output
