"""In-memory registry of open connections."""

from __future__ import annotations

import secrets
import string
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from .errors import CapacityExceededError, ConnectionNotFoundError, DuplicateConnectionError
from .models import BackendKind, ConnectionInfo, ConnectionRecord

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_connection_id(kind: BackendKind) -> str:
    """Build ``{kind}-{monotonic ns}-{random suffix}``."""

    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(9))
    return f"{kind.value}-{time.monotonic_ns()}-{suffix}"


class ConnectionRegistry:
    """Maps connection ids to records and enforces the connection cap.

    The lock only guards dictionary mutation; it is never held while a
    driver call is awaited.
    """

    def __init__(self, max_connections: int = 10, *, clock: Callable[[], datetime] | None = None) -> None:
        self._max_connections = max_connections
        self._records: dict[str, ConnectionRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock or (lambda: datetime.now(tz=timezone.utc))

    @property
    def max_connections(self) -> int:
        return self._max_connections

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._records

    def check_capacity(self) -> None:
        """Raise when no further connection can be registered."""

        if len(self._records) >= self._max_connections:
            raise CapacityExceededError(self._max_connections)

    def register(
        self,
        kind: BackendKind,
        config: Mapping[str, Any],
        handle: Any,
        connection_id: str | None = None,
        *,
        adapter: Any = None,
        lock: Any = None,
    ) -> str:
        """Store a new record and return its id."""

        now = self._clock()
        with self._lock:
            if len(self._records) >= self._max_connections:
                raise CapacityExceededError(self._max_connections)
            if connection_id is None:
                connection_id = generate_connection_id(kind)
            elif connection_id in self._records:
                raise DuplicateConnectionError(connection_id)
            self._records[connection_id] = ConnectionRecord(
                id=connection_id,
                backend_kind=kind,
                handle=handle,
                config=dict(config),
                created_at=now,
                last_used_at=now,
                adapter=adapter,
                lock=lock,
            )
        return connection_id

    def get(self, connection_id: str) -> ConnectionRecord | None:
        return self._records.get(connection_id)

    def lookup(self, connection_id: str) -> ConnectionRecord:
        record = self._records.get(connection_id)
        if record is None:
            raise ConnectionNotFoundError(connection_id)
        return record

    def touch(self, connection_id: str) -> ConnectionRecord:
        """Bump ``last_used_at`` and ``query_count`` for the record."""

        now = self._clock()
        with self._lock:
            record = self._records.get(connection_id)
            if record is None:
                raise ConnectionNotFoundError(connection_id)
            record.last_used_at = now
            record.query_count += 1
        return record

    def remove(self, connection_id: str) -> ConnectionRecord | None:
        """Drop the record if present; absent ids are ignored."""

        with self._lock:
            return self._records.pop(connection_id, None)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def ids(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._records)

    def info(self, connection_id: str) -> ConnectionInfo | None:
        record = self._records.get(connection_id)
        if record is None:
            return None
        return ConnectionInfo.from_record(record)

    def list(self) -> list[ConnectionInfo]:
        """Snapshot of redacted summaries."""

        with self._lock:
            records = tuple(self._records.values())
        return [ConnectionInfo.from_record(record) for record in records]


__all__ = ["ConnectionRegistry", "generate_connection_id"]
