"""Model backends — the service that turns a conversation into candidates.

:class:`LiteLLMBackend` reaches any LiteLLM-supported provider; the agent
loop only depends on the :class:`ModelBackend` protocol.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import litellm

from aicommand.core.interface.config import ModelConfig
from aicommand.core.interface.errors import BackendError
from aicommand.core.interface.models import ConversationHistory, Message
from aicommand.core.interface.transpilers.openai import OpenAITranspiler
from aicommand.utils.telemetry import (
    ATTR_FINISH_REASON,
    ATTR_MODEL,
    ATTR_PROVIDER,
    ATTR_TOKENS_COMPLETION,
    ATTR_TOKENS_PROMPT,
    ATTR_TOKENS_TOTAL,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


@runtime_checkable
class ModelBackend(Protocol):
    """Returns candidate model messages for a history and a tool schema."""

    async def generate(
        self,
        history: ConversationHistory,
        tools: list[dict[str, Any]],
    ) -> list[Message]:
        """Return one or more model-role candidates.

        ``tools`` holds function declarations
        (``{"name", "description", "parameters"}``).
        """
        ...


class LiteLLMBackend:
    """Async backend calling ``litellm.acompletion``.

    Usage::

        backend = LiteLLMBackend(ModelConfig(model="openai/gpt-4o-mini"))
        candidates = await backend.generate(history, tools)
    """

    def __init__(self, config: ModelConfig) -> None:
        self.config = config
        self.transpiler = OpenAITranspiler()
        if not self.supports_tools():
            logger.warning(
                "Model %s does not advertise function calling; tool calls may be ignored",
                config.model,
            )

    def supports_tools(self) -> bool:
        """Whether LiteLLM's model map lists function calling for the model.

        Models missing from the map are assumed to support it.
        """
        try:
            return bool(litellm.supports_function_calling(model=self.config.model))
        except Exception as exc:
            logger.debug("No capability data for %s: %s", self.config.model, exc)
            return True

    async def generate(
        self,
        history: ConversationHistory,
        tools: list[dict[str, Any]],
    ) -> list[Message]:
        with _tracer.start_as_current_span("model.generate") as span:
            span.set_attribute(ATTR_MODEL, self.config.model)
            span.set_attribute(ATTR_PROVIDER, self.config.provider)

            call_kwargs: dict[str, Any] = {
                "model": self.config.model,
                "messages": self.transpiler.to_provider(history)["messages"],
                "timeout": self.config.timeout,
                **self.config.extra,
            }
            if self.config.api_key:
                call_kwargs["api_key"] = self.config.api_key
            if self.config.api_base:
                call_kwargs["api_base"] = self.config.api_base
            if tools:
                call_kwargs["tools"] = [{"type": "function", "function": t} for t in tools]

            logger.debug("Calling %s with %d message(s)", self.config.model, len(history))
            try:
                response = await litellm.acompletion(**call_kwargs)  # pyright: ignore[reportUnknownMemberType]
            except Exception as exc:
                raise BackendError(str(exc), model=self.config.model) from exc

            candidates = self.transpiler.from_provider(_response_to_dict(response))
            if not candidates:
                raise BackendError("response contained no candidates", model=self.config.model)

            usage: dict[str, Any] | None = candidates[0].metadata.get("usage")
            if isinstance(usage, dict):
                span.set_attribute(ATTR_TOKENS_PROMPT, int(usage.get("prompt_tokens") or 0))
                span.set_attribute(ATTR_TOKENS_COMPLETION, int(usage.get("completion_tokens") or 0))
                span.set_attribute(ATTR_TOKENS_TOTAL, int(usage.get("total_tokens") or 0))
            finish_reason = candidates[0].metadata.get("finish_reason")
            if finish_reason is not None:
                span.set_attribute(ATTR_FINISH_REASON, str(finish_reason))

            return candidates


def _response_to_dict(response: Any) -> dict[str, Any]:
    """Flatten LiteLLM's OpenAI-compatible response object into plain data."""
    choices: list[dict[str, Any]] = []
    for choice in response.choices:
        message = choice.message
        tool_calls = [
            {
                "id": tc.id,
                "function": {"name": tc.function.name, "arguments": tc.function.arguments},
            }
            for tc in (message.tool_calls or [])
        ]
        choices.append(
            {
                "message": {"content": message.content, "tool_calls": tool_calls},
                "finish_reason": choice.finish_reason,
            }
        )

    result: dict[str, Any] = {"choices": choices}
    usage = getattr(response, "usage", None)
    if usage:
        result["usage"] = {
            "prompt_tokens": usage.prompt_tokens,
            "completion_tokens": usage.completion_tokens,
            "total_tokens": usage.total_tokens,
        }
    return result
