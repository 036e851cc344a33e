"""Agent loop error types."""

from __future__ import annotations


class MaxRoundsExceededError(RuntimeError):
    """The model kept requesting tools past the configured round limit."""

    def __init__(self, max_rounds: int) -> None:
        self.max_rounds = max_rounds
        super().__init__(f"Model still requesting tools after {max_rounds} rounds")
