"""Backend adapters, one per supported database family."""

from __future__ import annotations

from ..models import BackendKind
from .base import BackendAdapter, Statement, returns_rows
from .mongo import MongoAdapter
from .mysql import MysqlAdapter
from .postgres import PostgresAdapter
from .sqlite import SqliteAdapter


def default_adapters() -> dict[BackendKind, BackendAdapter]:
    """Return a fresh adapter instance for every backend kind."""

    return {
        BackendKind.SQLITE: SqliteAdapter(),
        BackendKind.MYSQL: MysqlAdapter(),
        BackendKind.POSTGRES: PostgresAdapter(),
        BackendKind.MONGODB: MongoAdapter(),
    }


__all__ = [
    "BackendAdapter",
    "MongoAdapter",
    "MysqlAdapter",
    "PostgresAdapter",
    "SqliteAdapter",
    "Statement",
    "default_adapters",
    "returns_rows",
]
