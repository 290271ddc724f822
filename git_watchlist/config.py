"""Configuration management."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError
from .models import CommitDetailOptions
from .triggers import DEFAULT_DEBOUNCE, DEFAULT_DELAY

DATABASE_ENV = "GIT_WATCHLIST_DB"
DELAY_ENV = "GIT_WATCHLIST_DELAY"
DEBOUNCE_ENV = "GIT_WATCHLIST_DEBOUNCE"
COMMIT_ENV = "GIT_WATCHLIST_COMMIT"


def default_database_path() -> Path:
    return Path.home() / ".config" / "git-watchlist.sqlite"


@dataclass(frozen=True)
class Settings:
    """Application configuration."""

    database: Path = field(default_factory=default_database_path)
    delay: float = DEFAULT_DELAY
    debounce: float = DEFAULT_DEBOUNCE
    commit: CommitDetailOptions = CommitDetailOptions.none()


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    """Build settings from defaults overridden by environment variables."""

    env = os.environ if environ is None else environ
    database = env.get(DATABASE_ENV)
    return Settings(
        database=Path(database).expanduser() if database else default_database_path(),
        delay=parse_seconds(env.get(DELAY_ENV), DEFAULT_DELAY, name=DELAY_ENV),
        debounce=parse_seconds(env.get(DEBOUNCE_ENV), DEFAULT_DEBOUNCE, name=DEBOUNCE_ENV),
        commit=CommitDetailOptions.parse(env.get(COMMIT_ENV)),
    )


def parse_seconds(raw: str | float | None, default: float, *, name: str) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from exc
    if not value > 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


__all__ = ["Settings", "load_settings", "parse_seconds", "default_database_path"]
