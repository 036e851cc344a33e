"""OpenAI transpiler — the chat-completions format LiteLLM speaks for every backend.

Key differences from the conversation model:
- Role "model" becomes "assistant"; function calls become ``tool_calls``.
- Each function response becomes its own "tool" role message.
- Inline data becomes an ``image_url`` content item holding a data URL.
"""

import json
from typing import Any

from aicommand.core.interface.models import (
    ConversationHistory,
    FileDataPart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    Message,
    Part,
    TextPart,
)


class OpenAITranspiler:
    """Converts between the conversation model and OpenAI's chat completion format."""

    def to_provider(self, history: ConversationHistory) -> dict[str, Any]:
        """Return ``{"messages": [...]}`` in OpenAI's schema."""
        messages: list[dict[str, Any]] = []
        for msg in history:
            messages.extend(self._message_to_openai(msg))
        return {"messages": messages}

    def from_provider(self, response: dict[str, Any]) -> list[Message]:
        """Convert a chat completion response into candidate messages."""
        candidates: list[Message] = []
        for choice in response.get("choices", []):
            candidate = self.parse_message(choice.get("message") or {})
            candidate.metadata["finish_reason"] = choice.get("finish_reason")
            if response.get("usage"):
                candidate.metadata["usage"] = response["usage"]
            candidates.append(candidate)
        return candidates

    def parse_message(self, message: dict[str, Any]) -> Message:
        """Convert one assistant message into a model-role :class:`Message`."""
        parts: list[Part] = []
        if message.get("content"):
            parts.append(TextPart(text=message["content"]))
        for tc in message.get("tool_calls") or []:
            function = tc.get("function") or {}
            call = FunctionCallPart(
                name=function.get("name", ""),
                args=_parse_arguments(function.get("arguments")),
            )
            if tc.get("id"):
                call.id = tc["id"]
            parts.append(call)
        return Message.model(parts)

    def _message_to_openai(self, msg: Message) -> list[dict[str, Any]]:
        """Convert one message; function responses fan out into tool messages."""
        if msg.role == "model":
            return [self._model_message(msg)]

        result: list[dict[str, Any]] = [
            {
                "role": "tool",
                "tool_call_id": part.id,
                "content": json.dumps(part.result, default=str),
            }
            for part in msg.function_responses
        ]
        content = [
            self._content_part_to_openai(part)
            for part in msg.parts
            if not isinstance(part, FunctionResponsePart)
        ]
        if len(content) == 1 and content[0]["type"] == "text":
            result.append({"role": "user", "content": content[0]["text"]})
        elif content:
            result.append({"role": "user", "content": content})
        return result

    def _model_message(self, msg: Message) -> dict[str, Any]:
        result: dict[str, Any] = {"role": "assistant", "content": msg.text or None}
        calls = msg.function_calls
        if calls:
            result["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": json.dumps(call.args)},
                }
                for call in calls
            ]
        return result

    def _content_part_to_openai(self, part: Part) -> dict[str, Any]:
        """Convert a non-response part to OpenAI's content array format."""
        if isinstance(part, TextPart):
            return {"type": "text", "text": part.text}
        if isinstance(part, InlineDataPart):
            url = part.base64_data
            if not url.startswith("data:"):
                url = f"data:{part.mime_type};base64,{url}"
            return {"type": "image_url", "image_url": {"url": url}}
        if isinstance(part, FileDataPart):
            return {"type": "image_url", "image_url": {"url": part.uri}}
        # Function calls only appear in model turns.
        return {"type": "text", "text": f"[{part.type}: {part.name}]"}


def _parse_arguments(raw: Any) -> dict[str, Any]:
    """Parse JSON string arguments from a tool call."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        result = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {"raw": raw}
    return result if isinstance(result, dict) else {"value": result}
