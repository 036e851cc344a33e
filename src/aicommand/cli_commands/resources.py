"""List and read provider resources."""

from __future__ import annotations

import asyncio
from typing import Any

import click

from aicommand.cli_commands._output import console, fail, print_resources_table


@click.group()
def resources() -> None:
    """List and read resources from the configured MCP servers."""


@resources.command("list")
@click.option("--skip-builtin", is_flag=True, help="Do not load the built-in example server.")
def list_resources(skip_builtin: bool) -> None:
    """List resources across all active servers."""
    from aicommand.protocols.errors import ConfigurationError, TransportError

    try:
        entries = asyncio.run(_with_aggregator(skip_builtin, lambda agg: agg.list_resources()))
    except (ConfigurationError, TransportError) as exc:
        fail("Discovery error", exc)

    if not entries:
        console.print("[yellow]No resources found.[/yellow]")
        return
    print_resources_table(entries)


@resources.command("read")
@click.argument("uri")
@click.option("--skip-builtin", is_flag=True, help="Do not load the built-in example server.")
def read_resource(uri: str, skip_builtin: bool) -> None:
    """Print the contents of resource URI."""
    from aicommand.protocols.errors import ConfigurationError, ProtocolError

    try:
        contents = asyncio.run(_with_aggregator(skip_builtin, lambda agg: agg.read_resource(uri)))
    except (ConfigurationError, ProtocolError) as exc:
        fail("Error", exc)

    for item in contents:
        if "text" in item:
            console.print(item["text"], markup=False, highlight=False)
        else:
            console.print(f"[dim]<{item.get('mimeType', 'binary')} blob, not shown>[/dim]")


async def _with_aggregator(skip_builtin: bool, action: Any) -> Any:
    from aicommand.config import ProviderStore
    from aicommand.protocols.aggregator import SessionAggregator
    from aicommand.servers.example import build_example_server

    builtins = [] if skip_builtin else [build_example_server()]
    async with SessionAggregator(ProviderStore().active(), builtins=builtins) as aggregator:
        return await action(aggregator)
