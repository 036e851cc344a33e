"""Agentic tool-calling chat over MCP providers."""

from __future__ import annotations

__version__ = "0.1.0"
