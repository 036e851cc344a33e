"""AgentLoop — drives one chat session between the user, a model and tools.
Each user prompt starts a bounded sequence of *rounds*.  In every round the
model sees the full history plus the merged tool schema; tool calls in its
first candidate are gated, dispatched and answered, and the next round
begins.  A round without tool calls produces the final answer.
"""
from __future__ import annotations
import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, assert_never

from aicommand.core.agent.errors import MaxRoundsExceededError
from aicommand.core.agent.media import MediaHandler, TempFileMediaHandler
from aicommand.core.interface.client import ModelBackend  # noqa: TC001
from aicommand.core.interface.errors import BackendError
from aicommand.core.interface.models import (
    ConversationHistory,
    FileDataPart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    Message,
    TextPart,
)
from aicommand.protocols.errors import ToolNotFoundError
from aicommand.protocols.mcp.models import CallToolResult
from aicommand.protocols.provider import ToolRouter  # noqa: TC001
from aicommand.runtime.gatekeeper import ApprovalGate, ApprovalRequest
from aicommand.utils.telemetry import ATTR_ROUND, ATTR_TOOL_CALLS, get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_MAX_ROUNDS = 25
DENIED_MESSAGE = "Tool call denied by the user."
EXIT_WORDS = frozenset({"exit", "quit", "q"})


class AgentState(str, Enum):
    AWAITING_MODEL = "awaiting_model"
    INSPECTING_RESPONSE = "inspecting_response"
    DISPATCHING_TOOL = "dispatching_tool"
    AWAITING_APPROVAL = "awaiting_approval"
    AWAITING_USER_INPUT = "awaiting_user_input"
    ERROR = "error"


def is_exit_command(text: str) -> bool:
    """Whether *text* ends the chat (empty input counts)."""
    return text.strip().lower() in EXIT_WORDS or not text.strip()


def tool_response_payload(value: Any) -> dict[str, Any]:
    """Shape a tool result as the ``result`` of a function response part.

    ``result`` is always a list; non-list values are wrapped.
    """
    is_error = False
    if isinstance(value, CallToolResult):
        items: Any = value.content
        is_error = value.is_error
    else:
        items = value
    if not isinstance(items, list):
        items = [items]
    payload: dict[str, Any] = {"result": items}
    if is_error:
        payload["isError"] = True
    return payload


class AgentLoop:
    """The tool-calling conversation loop.

    Usage::

        loop = AgentLoop(backend, aggregator, gate=ApprovalGate(CLIGatekeeper()))
        answer = await loop.send("What is 2 + 2?")
    """

    def __init__(
        self,
        backend: ModelBackend,
        router: ToolRouter,
        *,
        gate: ApprovalGate | None = None,
        media_handler: MediaHandler | None = None,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        if max_rounds < 1:
            msg = f"max_rounds must be at least 1, got {max_rounds}"
            raise ValueError(msg)
        self.backend = backend
        self.router = router
        self.gate = gate or ApprovalGate(enabled=False)
        self.media_handler = media_handler or TempFileMediaHandler()
        self.max_rounds = max_rounds
        self.history = ConversationHistory()
        self._state = AgentState.AWAITING_USER_INPUT

    @property
    def state(self) -> AgentState:
        return self._state

    async def send(self, prompt: str) -> str:
        """Add *prompt* to the history and run rounds until a final answer."""
        self.history.append(Message.user(prompt))

        for round_no in range(1, self.max_rounds + 1):
            with _tracer.start_as_current_span("agent.round") as span:
                span.set_attribute(ATTR_ROUND, round_no)
                candidate = await self._generate()

                self._state = AgentState.INSPECTING_RESPONSE
                text, calls = await self._inspect(candidate)
                span.set_attribute(ATTR_TOOL_CALLS, calls)

            if calls == 0:
                if text:
                    self.history.append(Message.model([TextPart(text=text)]))
                self._state = AgentState.AWAITING_USER_INPUT
                return text
            logger.debug("Round %d dispatched %d tool call(s)", round_no, calls)

        self._state = AgentState.ERROR
        raise MaxRoundsExceededError(self.max_rounds)

    async def chat(
        self,
        prompt: str,
        read_input: Callable[[], Awaitable[str]],
        emit: Callable[[str], Any],
    ) -> None:
        """Answer *prompt*, then keep reading prompts until an exit command."""
        while not is_exit_command(prompt):
            emit(await self.send(prompt))
            prompt = await read_input()

    # -- rounds -------------------------------------------------------------

    async def _generate(self) -> Message:
        self._state = AgentState.AWAITING_MODEL
        try:
            candidates = await self.backend.generate(self.history, self.router.merged_tool_schema())
        except BackendError:
            self._state = AgentState.ERROR
            raise
        except Exception as exc:
            self._state = AgentState.ERROR
            raise BackendError(str(exc)) from exc
        if not candidates:
            self._state = AgentState.ERROR
            raise BackendError("response contained no candidates")
        return candidates[0]

    async def _inspect(self, candidate: Message) -> tuple[str, int]:
        """Walk the candidate's parts in order; return (text, tool calls handled)."""
        fragments: list[str] = []
        calls = 0
        for part in candidate.parts:
            match part:
                case TextPart():
                    if part.text:
                        fragments.append(part.text)
                case FunctionCallPart():
                    await self._dispatch(part)
                    calls += 1
                case InlineDataPart() | FileDataPart():
                    fragments.append(self.media_handler.handle(part))
                    break
                case FunctionResponsePart():
                    logger.warning("Ignoring function response %s authored by the model", part.id)
                case _:
                    assert_never(part)
        return "\n\n".join(fragments), calls

    async def _dispatch(self, call: FunctionCallPart) -> None:
        self._state = AgentState.DISPATCHING_TOOL
        self.history.append(Message.function_call(call))

        provider = self.router.owner_of(call.name)
        if provider is None:
            logger.warning("Model requested unknown tool %s", call.name)
            unknown = CallToolResult.from_text(f"Unknown tool: {call.name}", is_error=True)
            self._respond(call, tool_response_payload(unknown))
            return

        if self.gate.needs_prompt:
            self._state = AgentState.AWAITING_APPROVAL
        request = ApprovalRequest(tool_name=call.name, provider=provider, arguments=call.args)
        try:
            allowed = await self.gate.check(request)
        except asyncio.CancelledError:
            # Every call in history keeps its answer, even when the chat is torn down.
            logger.info("Approval for %s cancelled", call.name)
            self._respond(call, {"result": [DENIED_MESSAGE], "isError": True})
            raise
        self._state = AgentState.DISPATCHING_TOOL
        if allowed:
            result = await self._invoke(call)
        else:
            logger.info("Tool call %s denied", call.name)
            result = {"result": [DENIED_MESSAGE], "isError": True}
        self._respond(call, result)

    def _respond(self, call: FunctionCallPart, result: dict[str, Any]) -> None:
        self.history.append(
            Message.function_response(FunctionResponsePart(id=call.id, name=call.name, result=result))
        )

    async def _invoke(self, call: FunctionCallPart) -> dict[str, Any]:
        try:
            value = await self.router.invoke(call.name, call.args)
        except ToolNotFoundError as exc:
            value = CallToolResult.from_text(str(exc), is_error=True)
        return tool_response_payload(value)
