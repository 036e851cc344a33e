"""Backend settings for one chat session."""

from typing import Any

from pydantic import BaseModel, Field

from aicommand.config import default_model


class ModelConfig(BaseModel):
    """Which model to talk to and how.

    ``model`` uses LiteLLM's ``provider/model_name`` naming and defaults to
    ``$AICOMMAND_MODEL``.  Anything in ``extra`` is passed straight to
    ``litellm.acompletion`` (``temperature``, ``max_tokens`` ...).
    """

    model: str = Field(default_factory=default_model)
    api_key: str | None = None
    api_base: str | None = None
    timeout: float = 600.0
    extra: dict[str, Any] = Field(default_factory=lambda: dict[str, Any]())

    @property
    def provider(self) -> str:
        """Provider prefix of ``model``; bare names are OpenAI models."""
        provider, sep, _ = self.model.partition("/")
        return provider if sep else "openai"
