"""Chat with a model that can call MCP tools."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from aicommand import __version__


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr through rich; stdout stays free for MCP frames."""
    handler = RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=debug)
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="aicommand")
@click.option("--debug", is_flag=True, help="Enable debug logging on stderr.")
def main(debug: bool) -> None:
    """Chat with a model that can call the tools of your MCP servers."""
    configure_logging(debug)


# Register subcommands
from aicommand.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
