"""TTL result cache keyed by request fingerprints."""

from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any, Callable

MISS = object()


def fingerprint(connection_id: str, query: Any, params: Any) -> str:
    """SHA-256 hex digest of ``(connection_id, query, params)``."""

    payload = json.dumps([connection_id, query, params], sort_keys=True, default=repr, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ResultCache:
    """Process-local cache with lazy TTL expiry.

    Stored results are returned as-is, never copied; callers must not mutate
    them.
    """

    def __init__(self, ttl: float = 300.0, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any:
        """Return the cached result or :data:`MISS` when absent or stale."""

        entry = self._entries.get(key)
        if entry is None:
            return MISS
        result, stored_at = entry
        if self._clock() - stored_at >= self._ttl:
            return MISS
        return result

    def put(self, key: str, result: Any) -> None:
        with self._lock:
            self._entries[key] = (result, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop stale entries; returns how many were removed."""

        now = self._clock()
        with self._lock:
            stale = [key for key, (_, stored_at) in self._entries.items() if now - stored_at >= self._ttl]
            for key in stale:
                del self._entries[key]
        return len(stale)


__all__ = ["MISS", "ResultCache", "fingerprint"]
