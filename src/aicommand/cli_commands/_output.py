"""Shared CLI output formatters."""

from __future__ import annotations

import sys
from typing import Any, NoReturn

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from aicommand.config import ProviderConfig  # noqa: TC001
from aicommand.protocols.aggregator import ToolDescriptor  # noqa: TC001

console = Console()


def fail(label: str, exc: object) -> NoReturn:
    """Print a red error line and exit with status 1."""
    console.print(f"[red]{label}:[/red] {escape(str(exc))}")
    sys.exit(1)


def success(message: str) -> None:
    console.print(f"[green]Success:[/green] {escape(message)}")


def warning(message: str) -> None:
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def print_servers_table(providers: list[ProviderConfig]) -> None:
    """Pretty-print configured providers as a table."""
    table = Table(title="MCP Servers")
    table.add_column("Name", style="cyan")
    table.add_column("Server")
    table.add_column("Status")

    for provider in providers:
        status = "[green]active[/green]" if provider.is_active else "[dim]inactive[/dim]"
        table.add_row(escape(provider.name), escape(provider.server), status)

    console.print(table)


def print_tools_table(tools: list[ToolDescriptor]) -> None:
    """Pretty-print the merged tool namespace as a table."""
    table = Table(title="Available Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Provider")
    table.add_column("Description")

    for tool in tools:
        table.add_row(escape(tool.name), escape(tool.provider), escape(_truncate(tool.description)))

    console.print(table)


def print_resources_table(resources: list[dict[str, Any]]) -> None:
    table = Table(title="Available Resources")
    table.add_column("URI", style="cyan")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("MIME type")

    for resource in resources:
        table.add_row(
            escape(str(resource.get("uri", "?"))),
            escape(str(resource.get("name", ""))),
            escape(str(resource.get("provider", ""))),
            escape(str(resource.get("mimeType", ""))),
        )

    console.print(table)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
