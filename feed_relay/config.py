"""Configuration loader for feed-relay.

Loads a YAML config file with environment variable overrides.
All env vars use the FEED_RELAY_ prefix.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from feed_relay.errors import ConfigError
from feed_relay.identifier import Identifier


ENV_PREFIX = "FEED_RELAY_"
DEFAULT_CACHE_PATH = ".cache.feed-relay.json"


@dataclass
class SourceAccount:
    """One configured source. name and url are informational."""
    id: Identifier
    name: str = ""
    url: str = ""


@dataclass
class RelayConfig:
    """Unified configuration for a relay run."""
    vk_token: str = ""
    telegram_token: str = ""
    telegram_channel: Identifier | None = None
    vk: list[SourceAccount] = field(default_factory=list)
    cache_path: str = DEFAULT_CACHE_PATH
    delivery_log_path: str = ""
    posts_per_source: int = 5
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def secrets(self) -> list[str]:
        return [s for s in (self.vk_token, self.telegram_token) if s]


def load_config(path: Path | None = None) -> RelayConfig:
    """Load config from YAML file with env var overrides.

    Env vars override YAML values. Mapping:
      FEED_RELAY_VK_TOKEN → vk_token
      FEED_RELAY_TELEGRAM_TOKEN → telegram_token
      FEED_RELAY_TELEGRAM_CHANNEL → telegram_channel
      FEED_RELAY_CACHE_PATH → cache_path
      FEED_RELAY_LOG_LEVEL → log_level

    Raises:
        ConfigError: If the file is not valid YAML or has the wrong shape.
    """
    raw: dict[str, Any] = {}
    if path and path.exists():
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse config {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a mapping")

    channel = _env_or("TELEGRAM_CHANNEL", raw.get("telegram_channel"))

    try:
        posts_per_source = int(raw.get("posts_per_source", 5))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"posts_per_source must be an integer: {exc}") from exc

    cfg = RelayConfig(
        vk_token=_env_or("VK_TOKEN", raw.get("vk_token", "")) or "",
        telegram_token=_env_or("TELEGRAM_TOKEN", raw.get("telegram_token", "")) or "",
        # Channel ids are negative, so they are kept in string form.
        telegram_channel=Identifier.string(str(channel)) if channel not in (None, "") else None,
        vk=_parse_accounts(raw.get("vk") or []),
        cache_path=_env_or("CACHE_PATH", raw.get("cache_path", DEFAULT_CACHE_PATH)),
        delivery_log_path=raw.get("delivery_log_path", "") or "",
        posts_per_source=posts_per_source,
        log_level=str(_env_or("LOG_LEVEL", raw.get("log_level", "INFO"))).upper(),
        log_file=raw.get("log_file", "") or "",
    )

    return cfg


def validate_for_run(cfg: RelayConfig, populate: bool = False) -> None:
    """Check everything a run needs. Telegram credentials are optional when populating."""
    missing: list[str] = []
    if not cfg.vk_token:
        missing.append("vk_token")
    if not populate:
        if not cfg.telegram_token:
            missing.append("telegram_token")
        if cfg.telegram_channel is None:
            missing.append("telegram_channel")
    if missing:
        raise ConfigError(f"Missing required config: {', '.join(missing)}")


def _parse_accounts(entries: Any) -> list[SourceAccount]:
    if not isinstance(entries, list):
        raise ConfigError("'vk' must be a list of accounts")
    accounts: list[SourceAccount] = []
    for entry in entries:
        if isinstance(entry, dict):
            if "id" not in entry:
                raise ConfigError(f"Account entry has no id: {entry!r}")
            accounts.append(SourceAccount(
                id=_parse_id(entry["id"], "vk.id"),
                name=str(entry.get("name") or ""),
                url=str(entry.get("url") or ""),
            ))
        else:
            accounts.append(SourceAccount(id=_parse_id(entry, "vk.id")))
    return accounts


def _parse_id(value: Any, name: str) -> Identifier:
    try:
        return Identifier.parse(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: {value!r}") from exc


def _env_or(suffix: str, default: Any) -> Any:
    return os.environ.get(f"{ENV_PREFIX}{suffix}", default)
