"""Built-in MCP servers shipped with ai-command."""

from aicommand.servers.example import build_example_server

__all__ = ["build_example_server"]
