"""Provider configuration — which MCP servers the agent may talk to.

The registry is a YAML mapping stored at ``$AICOMMAND_HOME/servers.yaml``::

    server-filesystem:
      server: npx -y @modelcontextprotocol/server-filesystem /my/folder
      status: active
    mywpserver:
      server: https://example.com/wp-json/mcp/v1/mcp
      status: inactive
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ValidationError

from aicommand.protocols.errors import ConfigurationError
from aicommand.protocols.mcp.transport import is_remote_address

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-4o-mini"

ProviderStatus = Literal["active", "inactive"]


def config_home() -> Path:
    """Directory holding aicommand's configuration files."""
    return Path(os.environ.get("AICOMMAND_HOME") or Path.home() / ".aicommand")


def default_model() -> str:
    return os.environ.get("AICOMMAND_MODEL") or DEFAULT_MODEL


class ProviderConfig(BaseModel):
    """One configured tool provider: a command line or an HTTP URL."""

    name: str
    server: str
    status: ProviderStatus = "active"

    @property
    def is_remote(self) -> bool:
        return is_remote_address(self.server)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class ProviderStore:
    """Load and persist the provider registry."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or config_home() / "servers.yaml"

    def load(self) -> dict[str, ProviderConfig]:
        """Return all configured providers keyed by name (file order)."""
        if not self.path.exists():
            return {}
        try:
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Could not parse {self.path}: {exc}") from exc
        if not isinstance(raw, dict):
            msg = f"{self.path} must contain a mapping of provider names"
            raise ConfigurationError(msg)

        providers: dict[str, ProviderConfig] = {}
        for name, entry in raw.items():
            try:
                providers[str(name)] = ProviderConfig.model_validate({"name": name, **(entry or {})})
            except (TypeError, ValidationError) as exc:
                raise ConfigurationError(f"Invalid provider entry {name!r}: {exc}") from exc
        return providers

    def save(self, providers: dict[str, ProviderConfig]) -> None:
        data = {name: p.model_dump(exclude={"name"}) for name, p in providers.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        logger.debug("Wrote %d provider(s) to %s", len(data), self.path)

    def get(self, name: str) -> ProviderConfig | None:
        return self.load().get(name)

    def active(self) -> list[ProviderConfig]:
        return [p for p in self.load().values() if p.is_active]

    def add(self, name: str, server: str) -> ProviderConfig:
        providers = self.load()
        if name in providers:
            msg = f"Server {name!r} already exists"
            raise ConfigurationError(msg)
        provider = ProviderConfig(name=name, server=server)
        providers[name] = provider
        self.save(providers)
        return provider

    def remove(self, *names: str) -> list[str]:
        """Remove *names*; return the ones that were not configured."""
        providers = self.load()
        missing = [n for n in names if n not in providers]
        for name in names:
            providers.pop(name, None)
        self.save(providers)
        return missing

    def clear(self) -> int:
        count = len(self.load())
        self.save({})
        return count

    def update(
        self,
        name: str,
        *,
        server: str | None = None,
        status: ProviderStatus | None = None,
    ) -> ProviderConfig:
        providers = self.load()
        if name not in providers:
            msg = f"Server {name!r} not found"
            raise ConfigurationError(msg)
        changes: dict[str, str] = {}
        if server is not None:
            changes["server"] = server
        if status is not None:
            changes["status"] = status
        updated = providers[name].model_copy(update=changes)
        providers[name] = updated
        self.save(providers)
        return updated
