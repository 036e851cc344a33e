"""``aicommand ai`` — interactive tool-calling chat."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import click

from aicommand.cli_commands._output import console, fail
from aicommand.core.agent.loop import DEFAULT_MAX_ROUNDS
from aicommand.utils.terminal import stdin_reader

if TYPE_CHECKING:
    from aicommand.config import ProviderConfig


@click.command()
@click.argument("prompt", required=False, default="")
@click.option(
    "--approval/--no-approval",
    default=True,
    help="Ask before running each tool (default: on).",
)
@click.option("--model", "-m", default=None, help="LiteLLM model id, e.g. openai/gpt-4o-mini.")
@click.option("--skip-builtin", is_flag=True, help="Do not load the built-in example server.")
@click.option("--strict", is_flag=True, help="Fail if a configured server cannot be reached.")
@click.option(
    "--max-rounds",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_ROUNDS,
    show_default=True,
    help="Maximum model rounds per prompt.",
)
@click.option(
    "--telemetry",
    is_flag=True,
    help="Export OpenTelemetry spans to stderr (and OTLP if configured).",
)
def ai(
    prompt: str,
    approval: bool,
    model: str | None,
    skip_builtin: bool,
    strict: bool,
    max_rounds: int,
    telemetry: bool,
) -> None:
    """Chat with a model that can call the tools of all active MCP servers.

    Type "exit", "quit" or an empty line to leave the chat.
    """
    from aicommand.config import ProviderStore, default_model
    from aicommand.core.agent.errors import MaxRoundsExceededError
    from aicommand.core.interface.errors import BackendError
    from aicommand.protocols.errors import ConfigurationError, ProtocolError, TransportError

    if telemetry:
        from aicommand.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(export_to_console=True)
        except ImportError as exc:
            fail("Telemetry error", exc)

    try:
        providers = ProviderStore().active()
        asyncio.run(
            _chat(
                prompt,
                providers,
                model=model or default_model(),
                approval=approval,
                skip_builtin=skip_builtin,
                strict=strict,
                max_rounds=max_rounds,
            )
        )
    except ConfigurationError as exc:
        fail("Configuration error", exc)
    except TransportError as exc:
        fail("Transport error", exc)
    except ProtocolError as exc:
        fail("Protocol error", exc)
    except (BackendError, MaxRoundsExceededError) as exc:
        fail("Error", exc)


async def _chat(
    prompt: str,
    providers: list[ProviderConfig],
    *,
    model: str,
    approval: bool,
    skip_builtin: bool,
    strict: bool,
    max_rounds: int,
) -> None:
    from aicommand.core.agent.loop import AgentLoop
    from aicommand.core.interface.client import LiteLLMBackend
    from aicommand.core.interface.config import ModelConfig
    from aicommand.protocols.aggregator import SessionAggregator
    from aicommand.runtime.gatekeeper import ApprovalGate, CLIGatekeeper
    from aicommand.servers.example import build_example_server

    builtins = [] if skip_builtin else [build_example_server()]
    async with SessionAggregator(
        providers, builtins=builtins, skip_unavailable=not strict
    ) as tools:
        loop = AgentLoop(
            LiteLLMBackend(ModelConfig(model=model)),
            tools,
            gate=ApprovalGate(CLIGatekeeper(console=console), enabled=approval),
            max_rounds=max_rounds,
        )
        if not prompt.strip():
            console.print("How can I help you?")
            prompt = await read_prompt()
        await loop.chat(prompt, read_prompt, emit_answer)


async def read_prompt() -> str:
    """Read the next user prompt without blocking the event loop."""
    console.print("[bold]> [/bold]", end="")
    try:
        return await stdin_reader.readline()
    except EOFError:
        return ""


def emit_answer(text: str) -> None:
    if text:
        console.print(text, style="green", markup=False, highlight=False)
