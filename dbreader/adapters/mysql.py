"""MySQL adapter backed by aiomysql."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import aiomysql

from ..errors import BackendConnectionError
from ..models import BackendKind, MutationResult
from .base import Params, Statement, require_sql, returns_rows

LOG = logging.getLogger(__name__)


class MysqlAdapter:
    """MySQL / MariaDB servers. Placeholders use the driver's ``%s`` style."""

    kind = BackendKind.MYSQL

    def __init__(self, *, connect_timeout: float = 5.0) -> None:
        self._connect_timeout = connect_timeout

    async def connect(self, config: Mapping[str, Any]) -> aiomysql.Connection:
        try:
            return await aiomysql.connect(**self._connect_kwargs(config))
        except Exception as exc:
            raise BackendConnectionError(self.kind, exc) from exc

    async def execute(self, handle: aiomysql.Connection, query: Any, params: Params = None) -> Any:
        statement = require_sql(query)
        async with handle.cursor(aiomysql.DictCursor) as cursor:
            affected = await cursor.execute(statement, params or None)
            if returns_rows(statement):
                rows = await cursor.fetchall()
                return [dict(row) for row in rows]
            return MutationResult(affected_count=affected or 0, inserted_id=cursor.lastrowid or None)

    async def close(self, handle: aiomysql.Connection) -> None:
        try:
            await handle.ensure_closed()
        except Exception as exc:
            LOG.debug("Graceful mysql close failed; closing transport", extra={"error": str(exc)})
            handle.close()

    def list_tables_query(self) -> Statement:
        return Statement("SHOW TABLES")

    def table_schema_query(self, table: str) -> Statement:
        return Statement(f"DESCRIBE {table}")

    async def list_tables(self, handle: aiomysql.Connection) -> list[dict[str, Any]]:
        return await self.execute(handle, "SHOW TABLES")

    def _connect_kwargs(self, config: Mapping[str, Any]) -> dict[str, object]:
        kwargs: dict[str, object] = {"host": "localhost", "port": 3306, "autocommit": True}
        for key, value in config.items():
            if key == "database":
                kwargs["db"] = value
            else:
                kwargs[key] = value
        kwargs.setdefault("connect_timeout", self._connect_timeout)
        return kwargs


__all__ = ["MysqlAdapter"]
