"""Inspect the merged tool namespace."""

from __future__ import annotations

import asyncio
import json

import click

from aicommand.cli_commands._output import console, fail, print_tools_table


@click.group()
def tools() -> None:
    """Inspect tools from the configured MCP servers."""


@tools.command("list")
@click.option("--skip-builtin", is_flag=True, help="Do not load the built-in example server.")
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
def list_tools(skip_builtin: bool, fmt: str) -> None:
    """List every tool the model would see, with its provider."""
    from aicommand.config import ProviderStore
    from aicommand.protocols.aggregator import SessionAggregator, ToolDescriptor
    from aicommand.protocols.errors import ConfigurationError, TransportError
    from aicommand.servers.example import build_example_server

    async def _collect() -> list[ToolDescriptor]:
        builtins = [] if skip_builtin else [build_example_server()]
        async with SessionAggregator(ProviderStore().active(), builtins=builtins) as aggregator:
            return aggregator.tools()

    try:
        descriptors = asyncio.run(_collect())
    except (ConfigurationError, TransportError) as exc:
        fail("Discovery error", exc)

    if not descriptors:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    if fmt == "json":
        console.print_json(json.dumps([d.model_dump() for d in descriptors]))
    else:
        print_tools_table(descriptors)
