"""Top-level reader orchestrating connections, caching, and retries."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Protocol

from .adapters import BackendAdapter, default_adapters
from .adapters.base import Params
from .cache import MISS, ResultCache, fingerprint
from .config import ReaderConfig
from .errors import DuplicateConnectionError, RequestError, UnsupportedBackendError
from .models import BackendKind, ConnectionInfo, ConnectionRecord
from .registry import ConnectionRegistry
from .retry import RetryEvent, RetryHook, run_with_retry

LOG = logging.getLogger(__name__)


class LoggerLike(Protocol):
    """Minimal logging sink accepted by the reader."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None: ...


def _is_request_error(exc: Exception) -> bool:
    return isinstance(exc, RequestError)


class DatabaseReader:
    """One connect/query/introspect API over every configured backend.

    Adapters are injected per backend kind; the defaults cover SQLite,
    MySQL, PostgreSQL, and MongoDB. Two concurrent queries on the same
    connection id are not serialized unless ``serialize_connections`` is
    enabled, so callers sharing a handle that is unsafe for concurrent use
    must enable it or keep a single writer per id.
    """

    def __init__(
        self,
        config: ReaderConfig | None = None,
        *,
        adapters: Mapping[BackendKind | str, BackendAdapter] | None = None,
        logger: LoggerLike | None = None,
        on_retry: RetryHook | None = None,
    ) -> None:
        self._config = config or ReaderConfig()
        source = adapters if adapters is not None else default_adapters()
        self._adapters: dict[BackendKind, BackendAdapter] = {
            BackendKind.parse(kind): adapter for kind, adapter in source.items()
        }
        self._log = logger or LOG
        self._on_retry = on_retry
        self._registry = ConnectionRegistry(self._config.max_connections)
        self._cache = ResultCache(self._config.cache_ttl) if self._config.enable_cache else None

    @property
    def config(self) -> ReaderConfig:
        return self._config

    @property
    def cache_enabled(self) -> bool:
        return self._cache is not None

    @property
    def cache_size(self) -> int:
        return len(self._cache) if self._cache is not None else 0

    async def __aenter__(self) -> "DatabaseReader":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect_all()

    async def connect(
        self,
        backend: BackendKind | str,
        config: Mapping[str, Any] | None = None,
        connection_id: str | None = None,
    ) -> str:
        """Open a connection and return its id."""

        try:
            kind = BackendKind.parse(backend)
        except ValueError:
            raise UnsupportedBackendError(backend) from None
        adapter = self._adapters.get(kind)
        if adapter is None:
            raise UnsupportedBackendError(backend)
        self._registry.check_capacity()
        if connection_id is not None and connection_id in self._registry:
            raise DuplicateConnectionError(connection_id)

        options = dict(config or {})
        self._log.info("Connecting to %s database...", kind.value)
        try:
            handle = await adapter.connect(options)
        except Exception as exc:
            self._log.error("Failed to connect to %s: %s", kind.value, exc)
            raise
        lock = asyncio.Lock() if self._config.serialize_connections else None
        try:
            connection_id = self._registry.register(
                kind, options, handle, connection_id, adapter=adapter, lock=lock
            )
        except Exception:
            await adapter.close(handle)
            raise
        self._log.info("Connected to %s database (ID: %s)", kind.value, connection_id)
        return connection_id

    async def connect_profile(self, name: str, connection_id: str | None = None) -> str:
        """Connect using a named profile from the reader config."""

        profile = self._config.profile(name)
        return await self.connect(profile.backend, profile.options, connection_id)

    async def query(
        self,
        connection_id: str,
        query: Any,
        params: Params = None,
        *,
        cache: bool = True,
    ) -> Any:
        """Run ``query`` on the connection, consulting the cache first."""

        record = self._registry.touch(connection_id)
        use_cache = self._cache is not None and cache
        key = ""
        if use_cache:
            key = fingerprint(connection_id, query, params)
            cached = self._cache.get(key)
            if cached is not MISS:
                self._log.debug("Returning cached query result")
                return cached

        try:
            result = await run_with_retry(
                lambda: self._execute(record, query, params),
                self._config.retry,
                on_retry=self._report_retry,
                give_up=_is_request_error,
            )
        except Exception as exc:
            self._log.error("Query failed on %s: %s", record.backend_kind.value, exc)
            raise

        if use_cache:
            self._cache.put(key, result)
        return result

    async def disconnect(self, connection_id: str) -> None:
        """Close and forget the connection; unknown ids are ignored."""

        record = self._registry.get(connection_id)
        if record is None:
            return
        try:
            await record.adapter.close(record.handle)
        except Exception as exc:
            self._log.error("Error disconnecting %s: %s", connection_id, exc)
            raise
        self._registry.remove(connection_id)
        self._log.info("Disconnected from %s database (ID: %s)", record.backend_kind.value, connection_id)

    async def disconnect_all(self) -> dict[str, Exception]:
        """Disconnect everything; returns failures keyed by connection id."""

        ids = self._registry.ids()
        outcomes = await asyncio.gather(*(self.disconnect(item) for item in ids), return_exceptions=True)
        failures: dict[str, Exception] = {}
        for connection_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, Exception):
                self._log.error("Failed to disconnect %s: %s", connection_id, outcome)
                failures[connection_id] = outcome
            elif isinstance(outcome, BaseException):
                raise outcome
        self._registry.clear()
        self._log.info("All database connections closed")
        return failures

    def list_connections(self) -> list[ConnectionInfo]:
        return self._registry.list()

    def connection_info(self, connection_id: str) -> ConnectionInfo | None:
        return self._registry.info(connection_id)

    async def list_tables(self, connection_id: str) -> Any:
        """List tables (or collections) using the backend's canned request."""

        record = self._registry.lookup(connection_id)
        statement = record.adapter.list_tables_query()
        if statement is None:
            self._registry.touch(connection_id)
            return await record.adapter.list_tables(record.handle)
        return await self.query(connection_id, statement.query, statement.params)

    async def table_schema(self, connection_id: str, table: str) -> Any:
        """Describe ``table`` using the backend's canned request."""

        record = self._registry.lookup(connection_id)
        statement = record.adapter.table_schema_query(table)
        return await self.query(connection_id, statement.query, statement.params)

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
            self._log.info("Query cache cleared")

    async def _execute(self, record: ConnectionRecord, query: Any, params: Params) -> Any:
        if record.lock is None:
            return await record.adapter.execute(record.handle, query, params)
        async with record.lock:
            return await record.adapter.execute(record.handle, query, params)

    def _report_retry(self, event: RetryEvent) -> None:
        self._log.warning(
            "Retry %s/%s after %.3fs: %s", event.attempt, event.max_retries, event.delay, event.cause
        )
        if self._on_retry is not None:
            self._on_retry(event)


__all__ = ["DatabaseReader", "LoggerLike"]
