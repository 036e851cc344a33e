"""Error types for the conversation model and the model backend."""

from __future__ import annotations


class HistoryError(ValueError):
    """A message would break the call/response pairing of the history."""


class BackendError(Exception):
    """The model backend failed to produce a response."""

    def __init__(self, detail: str, *, model: str | None = None) -> None:
        self.detail = detail
        self.model = model
        prefix = f"Model backend error ({model})" if model else "Model backend error"
        super().__init__(f"{prefix}: {detail}")
