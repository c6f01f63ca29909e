"""Reader configuration models and TOML loading helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import tomllib

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

CONFIG_FILE = Path(os.environ.get("DBREADER_CONFIG", Path.home() / ".config" / "dbreader" / "config.toml"))


class RetryPolicy(BaseModel):
    """Bounded exponential backoff settings (delays in seconds)."""

    max_retries: int = Field(default=3, ge=0)
    backoff_factor: float = Field(default=2.0, ge=1.0)
    min_delay: float = Field(default=1.0, ge=0.0)
    max_delay: float = Field(default=5.0, ge=0.0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "RetryPolicy":
        if self.max_delay < self.min_delay:
            raise ValueError("max_delay must be >= min_delay")
        return self

    def delay_before(self, attempt: int) -> float:
        """Delay slept before retry ``attempt`` (1-based)."""

        if attempt < 1:
            return 0.0
        return min(self.min_delay * self.backoff_factor ** (attempt - 1), self.max_delay)


class ConnectionProfileConfig(BaseModel):
    """Named connection preset stored in config.toml."""

    name: str
    backend: str
    options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("profile name must not be blank")
        return value


class ReaderConfig(BaseModel):
    """Constructor-level settings for :class:`dbreader.reader.DatabaseReader`."""

    enable_cache: bool = False
    cache_ttl: float = Field(default=300.0, gt=0)
    max_connections: int = Field(default=10, ge=1)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    serialize_connections: bool = False
    profiles: list[ConnectionProfileConfig] = Field(default_factory=list)

    def profile(self, name: str) -> ConnectionProfileConfig:
        """Return the named profile."""

        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' not found.")


def load_config(path: Path | None = None) -> ReaderConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return ReaderConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return ReaderConfig()
    try:
        return ReaderConfig(**data)
    except ValidationError:
        return ReaderConfig()


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    reader = raw.get("reader")
    if isinstance(reader, dict):
        for key in ("enable_cache", "serialize_connections"):
            value = reader.get(key)
            if isinstance(value, bool):
                data[key] = value
        ttl = reader.get("cache_ttl")
        if isinstance(ttl, (int, float)) and not isinstance(ttl, bool):
            data["cache_ttl"] = float(ttl)
        limit = reader.get("max_connections")
        if isinstance(limit, int) and not isinstance(limit, bool):
            data["max_connections"] = limit
    retry = raw.get("retry")
    if isinstance(retry, dict):
        data["retry"] = {key: value for key, value in retry.items() if key in RetryPolicy.model_fields}
    profiles = raw.get("profiles")
    if isinstance(profiles, list):
        parsed_profiles: list[dict[str, object]] = []
        for profile in profiles:
            if not isinstance(profile, dict):
                continue
            name = profile.get("name")
            backend = profile.get("backend")
            if not isinstance(name, str) or not isinstance(backend, str):
                continue
            options = {key: value for key, value in profile.items() if key not in {"name", "backend"}}
            parsed_profiles.append({"name": name, "backend": backend, "options": options})
        data["profiles"] = parsed_profiles
    return data


__all__ = [
    "CONFIG_FILE",
    "ConnectionProfileConfig",
    "ReaderConfig",
    "RetryPolicy",
    "load_config",
]
