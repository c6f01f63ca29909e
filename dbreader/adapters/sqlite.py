"""SQLite adapter backed by aiosqlite."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import aiosqlite

from ..errors import BackendConnectionError
from ..models import BackendKind, MutationResult
from .base import Params, Statement, leading_keyword, require_sql, returns_rows

LOG = logging.getLogger(__name__)

_INSERT_KEYWORDS = frozenset({"insert", "replace"})


class SqliteAdapter:
    """File or in-memory SQLite databases."""

    kind = BackendKind.SQLITE

    _LIST_TABLES = "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"

    async def connect(self, config: Mapping[str, Any]) -> aiosqlite.Connection:
        filename = str(config.get("filename") or ":memory:")
        mode = config.get("mode")
        database = f"file:{filename}?mode={mode}" if mode else filename
        try:
            handle = await aiosqlite.connect(database, uri=bool(mode))
        except Exception as exc:
            raise BackendConnectionError(self.kind, exc) from exc
        handle.row_factory = aiosqlite.Row
        try:
            await handle.execute("PRAGMA foreign_keys = ON")
        except Exception as exc:
            await self.close(handle)
            raise BackendConnectionError(self.kind, exc) from exc
        return handle

    async def execute(self, handle: aiosqlite.Connection, query: Any, params: Params = None) -> Any:
        statement = require_sql(query)
        args = params if params is not None else ()
        if returns_rows(statement):
            async with handle.execute(statement, args) as cursor:
                rows = await cursor.fetchall()
            return [dict(row) for row in rows]
        async with handle.execute(statement, args) as cursor:
            affected = max(cursor.rowcount, 0)
            inserted_id = cursor.lastrowid if leading_keyword(statement) in _INSERT_KEYWORDS else None
        await handle.commit()
        return MutationResult(affected_count=affected, inserted_id=inserted_id)

    async def close(self, handle: aiosqlite.Connection) -> None:
        try:
            await handle.close()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            LOG.debug("Ignoring sqlite close failure", extra={"error": str(exc)})

    def list_tables_query(self) -> Statement:
        return Statement(self._LIST_TABLES)

    def table_schema_query(self, table: str) -> Statement:
        return Statement(f"PRAGMA table_info({table})")

    async def list_tables(self, handle: aiosqlite.Connection) -> list[dict[str, Any]]:
        return await self.execute(handle, self._LIST_TABLES)


__all__ = ["SqliteAdapter"]
