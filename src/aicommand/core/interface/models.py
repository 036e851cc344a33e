"""Conversation data model — messages made of typed content parts.

A :class:`Message` is one turn (``user`` or ``model``) holding an ordered
list of parts.  ``Part`` is a closed union discriminated on ``type``;
code dispatching over parts must handle every member explicitly.
"""

from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from aicommand.core.interface.errors import HistoryError

# ---------------------------------------------------------------------------
# Content Parts
# ---------------------------------------------------------------------------


class TextPart(BaseModel):
    """Plain text."""

    type: Literal["text"] = "text"
    text: str


class FunctionCallPart(BaseModel):
    """A tool invocation requested by the model."""

    type: Literal["function_call"] = "function_call"
    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    name: str
    args: dict[str, Any] = {}


class FunctionResponsePart(BaseModel):
    """The outcome of a tool invocation, answering a :class:`FunctionCallPart`."""

    type: Literal["function_response"] = "function_response"
    id: str
    name: str
    result: dict[str, Any] = {}


class InlineDataPart(BaseModel):
    """Binary data carried inline as base64 (or a ``data:`` URL)."""

    type: Literal["inline_data"] = "inline_data"
    mime_type: str
    base64_data: str


class FileDataPart(BaseModel):
    """Reference to data stored elsewhere."""

    type: Literal["file_data"] = "file_data"
    uri: str
    mime_type: str | None = None


Part = Annotated[
    TextPart | FunctionCallPart | FunctionResponsePart | InlineDataPart | FileDataPart,
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


class Message(BaseModel):
    """One conversation turn.

    Tool responses are authored as ``user`` turns immediately following the
    ``model`` turn that requested them.
    """

    role: Literal["user", "model"]
    parts: list[Part] = []
    metadata: dict[str, Any] = {}

    @property
    def text(self) -> str:
        """Concatenated text of all :class:`TextPart` parts."""
        return "".join(part.text for part in self.parts if isinstance(part, TextPart))

    @property
    def function_calls(self) -> list[FunctionCallPart]:
        return [part for part in self.parts if isinstance(part, FunctionCallPart)]

    @property
    def function_responses(self) -> list[FunctionResponsePart]:
        return [part for part in self.parts if isinstance(part, FunctionResponsePart)]

    @classmethod
    def user(cls, text: str, **metadata: Any) -> "Message":
        """Create a user text message."""
        return cls(role="user", parts=[TextPart(text=text)], metadata=metadata)

    @classmethod
    def model(cls, parts: list[Part], **metadata: Any) -> "Message":
        """Create a model message from parts."""
        return cls(role="model", parts=list(parts), metadata=metadata)

    @classmethod
    def function_call(cls, part: FunctionCallPart) -> "Message":
        """Echo a single tool call as a model turn."""
        return cls(role="model", parts=[part])

    @classmethod
    def function_response(cls, part: FunctionResponsePart) -> "Message":
        """Wrap a tool result in the user turn the backend expects."""
        return cls(role="user", parts=[part])


# ---------------------------------------------------------------------------
# Conversation History
# ---------------------------------------------------------------------------


class ConversationHistory(BaseModel):
    """An ordered sequence of messages forming a conversation."""

    messages: list[Message] = []

    def append(self, message: Message) -> None:
        """Append *message*, enforcing call/response pairing.

        Raises :class:`HistoryError` if the message answers a tool call id
        that the immediately preceding model turn did not issue.
        """
        responses = message.function_responses
        if responses:
            previous = self.messages[-1] if self.messages else None
            issued = (
                {call.id for call in previous.function_calls}
                if previous is not None and previous.role == "model"
                else set()
            )
            for response in responses:
                if response.id not in issued:
                    msg = f"Function response {response.id!r} ({response.name}) has no matching call"
                    raise HistoryError(msg)
        self.messages.append(message)

    @property
    def last(self) -> Message | None:
        return self.messages[-1] if self.messages else None

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):  # type: ignore[override]
        return iter(self.messages)
