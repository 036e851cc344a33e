"""``aicommand mcp`` — manage, proxy and serve MCP servers."""

from __future__ import annotations

import asyncio
import json

import click

from aicommand.cli_commands._output import console, fail, print_servers_table, success, warning
from aicommand.config import ProviderStore
from aicommand.protocols.errors import ConfigurationError


@click.group()
def mcp() -> None:
    """Work with MCP servers."""


@mcp.group("server")
def server() -> None:
    """Manage the configured MCP servers."""


@server.command("list")
@click.option(
    "--status",
    type=click.Choice(["active", "inactive"]),
    default=None,
    help="Only show servers with this status.",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)
def list_servers(status: str | None, fmt: str) -> None:
    """List configured MCP servers."""
    try:
        providers = list(ProviderStore().load().values())
    except ConfigurationError as exc:
        fail("Configuration error", exc)

    if status is not None:
        providers = [p for p in providers if p.status == status]

    if fmt == "json":
        console.print_json(json.dumps([p.model_dump() for p in providers]))
        return

    if not providers:
        console.print("[yellow]No servers configured.[/yellow]")
        return
    print_servers_table(providers)


@server.command("add")
@click.argument("name")
@click.argument("address", metavar="SERVER")
def add_server(name: str, address: str) -> None:
    """Add server NAME, reached at SERVER (a command line or an HTTP URL)."""
    try:
        ProviderStore().add(name, address)
    except ConfigurationError as exc:
        fail("Error", exc)
    success("Server added.")


@server.command("remove")
@click.argument("names", nargs=-1)
@click.option("--all", "remove_all", is_flag=True, help="Remove all servers.")
def remove_server(names: tuple[str, ...], remove_all: bool) -> None:
    """Remove one or more servers."""
    if not remove_all and not names:
        fail("Error", "Please specify one or more servers, or use --all.")

    store = ProviderStore()
    try:
        if remove_all:
            count = store.clear()
            success(f"Removed {count} server(s).")
            return
        missing = store.remove(*names)
    except ConfigurationError as exc:
        fail("Error", exc)

    for name in missing:
        warning(f"Server '{name}' not found.")
    removed = len(names) - len(missing)
    if removed == 0:
        fail("Error", f"No servers removed ({len(missing)} not found).")
    if missing:
        warning(f"Removed {removed} of {len(names)} server(s).")
    else:
        success(f"Removed {removed} server(s).")


@server.command("update")
@click.argument("name")
@click.option("--status", type=click.Choice(["active", "inactive"]), default=None)
@click.option("--server", "address", default=None, help="New command line or URL.")
def update_server(name: str, status: str | None, address: str | None) -> None:
    """Update fields of server NAME."""
    if status is None and address is None:
        fail("Error", "Nothing to update; pass --status or --server.")
    try:
        ProviderStore().update(name, server=address, status=status)  # type: ignore[arg-type]
    except ConfigurationError as exc:
        fail("Error", exc)
    success("Server updated.")


@mcp.command("proxy")
@click.argument("name")
def proxy(name: str) -> None:
    """Bridge stdio to the remote HTTP server NAME.

    Lets stdio-only MCP clients use a server configured by URL.
    """
    from aicommand.protocols.mcp.proxy import ProxySession
    from aicommand.protocols.mcp.server import serve_stdio

    try:
        provider = ProviderStore().get(name)
    except ConfigurationError as exc:
        fail("Error", exc)
    if provider is None:
        fail("Error", f"Server '{name}' does not exist.")
    if not provider.is_remote:
        fail("Error", f"Server '{name}' is not using HTTP transport.")

    async def _proxy() -> None:
        async with ProxySession(provider.server) as session:
            await serve_stdio(session)

    asyncio.run(_proxy())


@mcp.command("serve")
def serve() -> None:
    """Run the built-in example server over stdio."""
    from aicommand.protocols.mcp.server import serve_stdio
    from aicommand.servers.example import build_example_server

    asyncio.run(serve_stdio(build_example_server()))
