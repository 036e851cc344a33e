"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from aicommand.cli_commands.ai import ai
    from aicommand.cli_commands.mcp import mcp
    from aicommand.cli_commands.resources import resources
    from aicommand.cli_commands.tools import tools

    cli.add_command(ai)
    cli.add_command(mcp)
    cli.add_command(tools)
    cli.add_command(resources)
