"""Backend-specific transpiler implementations."""

from aicommand.core.interface.transpilers.openai import OpenAITranspiler

__all__ = ["OpenAITranspiler"]
