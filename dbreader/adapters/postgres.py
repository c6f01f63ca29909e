"""PostgreSQL adapter backed by asyncpg."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping

import asyncpg

from ..errors import BackendConnectionError, MalformedRequestError
from ..models import BackendKind, MutationResult
from .base import Params, Statement, leading_keyword, require_sql, returns_rows

LOG = logging.getLogger(__name__)

_RETURNING = re.compile(r"\breturning\b", re.IGNORECASE)


class PostgresAdapter:
    """Runs SQL statements against PostgreSQL via asyncpg."""

    kind = BackendKind.POSTGRES

    _LIST_TABLES = "SELECT tablename FROM pg_tables WHERE schemaname = 'public'"

    _TABLE_SCHEMA = (
        "SELECT column_name, data_type, is_nullable FROM information_schema.columns WHERE table_name = $1"
    )

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout

    async def connect(self, config: Mapping[str, Any]) -> asyncpg.Connection:
        try:
            return await asyncpg.connect(**self._connect_kwargs(config))
        except Exception as exc:
            raise BackendConnectionError(self.kind, exc) from exc

    async def execute(self, handle: asyncpg.Connection, query: Any, params: Params = None) -> Any:
        statement = require_sql(query)
        if isinstance(params, Mapping):
            raise MalformedRequestError("PostgreSQL parameters must be positional ($1, $2, ...)")
        args = tuple(params or ())
        if returns_rows(statement):
            records = await handle.fetch(statement, *args)
            return _records_to_rows(records)
        if _RETURNING.search(statement):
            records = await handle.fetch(statement, *args)
            return _returning_result(statement, _records_to_rows(records))
        status = await handle.execute(statement, *args)
        return MutationResult(affected_count=_affected_from_status(status))

    async def close(self, handle: asyncpg.Connection) -> None:
        try:
            await handle.close()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            LOG.debug("Ignoring postgres close failure", extra={"error": str(exc)})

    def list_tables_query(self) -> Statement:
        return Statement(self._LIST_TABLES)

    def table_schema_query(self, table: str) -> Statement:
        return Statement(self._TABLE_SCHEMA, [table])

    async def list_tables(self, handle: asyncpg.Connection) -> list[dict[str, Any]]:
        return await self.execute(handle, self._LIST_TABLES)

    def _connect_kwargs(self, config: Mapping[str, Any]) -> dict[str, object]:
        options = dict(config)
        dsn = options.pop("dsn", None)
        kwargs: dict[str, object] = {}
        if dsn:
            kwargs["dsn"] = dsn
        else:
            kwargs["host"] = options.pop("host", None) or "localhost"
            kwargs["port"] = options.pop("port", None) or 5432
        kwargs.update(options)
        kwargs.setdefault("timeout", self._connect_timeout)
        return kwargs


def _records_to_rows(records: Iterable[asyncpg.Record]) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for record in records:
        rows.append({str(key): record[key] for key in record.keys()})
    return rows


def _returning_result(statement: str, rows: list[dict[str, Any]]) -> MutationResult:
    # The first returned column of an INSERT is taken as the generated key.
    if leading_keyword(statement) != "insert":
        return MutationResult(affected_count=len(rows))
    ids = tuple(next(iter(row.values())) for row in rows if row)
    return MutationResult(affected_count=len(rows), inserted_id=ids[0] if ids else None, inserted_ids=ids)


def _affected_from_status(status: str) -> int:
    # Command tags look like "INSERT 0 3", "UPDATE 2" or "CREATE TABLE".
    tail = status.rsplit(None, 1)[-1] if status else ""
    return int(tail) if tail.isdigit() else 0


__all__ = ["PostgresAdapter"]
