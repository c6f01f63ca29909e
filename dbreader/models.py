"""Shared dataclasses used across the registry, adapters, and reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping
from urllib.parse import urlsplit, urlunsplit

REDACTED = "***"

SENSITIVE_KEYS = frozenset({"password", "passwd", "secret", "token"})


class BackendKind(str, Enum):
    """Supported database families."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    MONGODB = "mongodb"

    @classmethod
    def parse(cls, value: "BackendKind | str") -> "BackendKind":
        """Resolve a kind from its value or one of its aliases."""

        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        kind = _ALIASES.get(key)
        if kind is None:
            raise ValueError(key)
        return kind


_ALIASES: dict[str, BackendKind] = {
    "sqlite": BackendKind.SQLITE,
    "relational-file": BackendKind.SQLITE,
    "mysql": BackendKind.MYSQL,
    "relational-network-a": BackendKind.MYSQL,
    "postgres": BackendKind.POSTGRES,
    "postgresql": BackendKind.POSTGRES,
    "relational-network-b": BackendKind.POSTGRES,
    "mongodb": BackendKind.MONGODB,
    "mongo": BackendKind.MONGODB,
    "document-store": BackendKind.MONGODB,
}


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Normalized outcome of a statement that changes data."""

    affected_count: int = 0
    inserted_id: Any = None
    inserted_ids: tuple[Any, ...] = ()


@dataclass(slots=True)
class ConnectionRecord:
    """Live connection tracked by the registry."""

    id: str
    backend_kind: BackendKind
    handle: Any
    config: Mapping[str, Any]
    created_at: datetime
    last_used_at: datetime
    query_count: int = 0
    adapter: Any = field(default=None, repr=False, compare=False)
    lock: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ConnectionInfo:
    """Read-only summary of a connection with credentials redacted."""

    id: str
    backend_kind: BackendKind
    created_at: datetime
    last_used_at: datetime
    query_count: int
    config: Mapping[str, Any]

    @classmethod
    def from_record(cls, record: ConnectionRecord) -> "ConnectionInfo":
        return cls(
            id=record.id,
            backend_kind=record.backend_kind,
            created_at=record.created_at,
            last_used_at=record.last_used_at,
            query_count=record.query_count,
            config=redact_config(record.config),
        )


def redact_config(config: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``config`` with credential fields masked.

    Nested mappings are redacted too, and connection URLs such as a
    PostgreSQL ``dsn`` or a MongoDB ``url`` keep their user but lose the
    password.
    """

    redacted: dict[str, Any] = {}
    for key, value in config.items():
        if str(key).lower() in SENSITIVE_KEYS:
            redacted[key] = REDACTED
        elif isinstance(value, Mapping):
            redacted[key] = redact_config(value)
        elif isinstance(value, str) and "://" in value:
            redacted[key] = _redact_url(value)
        else:
            redacted[key] = value
    return redacted


def _redact_url(value: str) -> str:
    try:
        parts = urlsplit(value)
    except ValueError:
        return value
    if parts.password is None:
        return value
    # rpartition keeps multi-host netlocs such as "u:p@h1:1,h2:2" intact.
    userinfo, _, hosts = parts.netloc.rpartition("@")
    user = userinfo.partition(":")[0]
    return urlunsplit(parts._replace(netloc=f"{user}:{REDACTED}@{hosts}"))


__all__ = [
    "BackendKind",
    "ConnectionInfo",
    "ConnectionRecord",
    "MutationResult",
    "REDACTED",
    "redact_config",
]
