"""MongoDB adapter backed by motor.

Queries are structured requests rather than text::

    {"collection": "users", "operation": "find", "filter": {"active": True}}

``params`` is ignored for this backend.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..errors import BackendConnectionError, MalformedRequestError, UnsupportedOperationError
from ..models import BackendKind, MutationResult
from .base import Params, Statement

LOG = logging.getLogger(__name__)

OPERATIONS = frozenset(
    {
        "find",
        "findOne",
        "insertOne",
        "insertMany",
        "updateOne",
        "updateMany",
        "deleteOne",
        "deleteMany",
        "aggregate",
    }
)

_CONNECTION_KEYS = frozenset({"url", "host", "port", "database"})


class MongoAdapter:
    """Document-store adapter translating structured requests into motor calls."""

    kind = BackendKind.MONGODB

    def __init__(self, *, client_factory: Any = AsyncIOMotorClient, connect_timeout_ms: int = 5000) -> None:
        self._client_factory = client_factory
        self._connect_timeout_ms = connect_timeout_ms

    async def connect(self, config: Mapping[str, Any]) -> AsyncIOMotorDatabase:
        url = config.get("url") or f"mongodb://{config.get('host') or 'localhost'}:{config.get('port') or 27017}"
        options = {key: value for key, value in config.items() if key not in _CONNECTION_KEYS}
        options.setdefault("serverSelectionTimeoutMS", self._connect_timeout_ms)
        client = None
        try:
            client = self._client_factory(url, **options)
            await client.admin.command("ping")
        except Exception as exc:
            if client is not None:
                client.close()
            raise BackendConnectionError(self.kind, exc) from exc
        database = config.get("database")
        if database:
            return client[database]
        return client.get_default_database("test")

    async def execute(self, handle: AsyncIOMotorDatabase, query: Any, params: Params = None) -> Any:
        name, operation, args = parse_request(query)
        collection = handle[name]
        options = args.get("options") or {}
        if operation == "find":
            cursor = collection.find(args.get("filter") or {}, **options)
            return await cursor.to_list(length=None)
        if operation == "findOne":
            return await collection.find_one(args.get("filter") or {}, **options)
        if operation == "insertOne":
            inserted = await collection.insert_one(args.get("document"))
            return MutationResult(affected_count=1, inserted_id=inserted.inserted_id)
        if operation == "insertMany":
            inserted = await collection.insert_many(args.get("documents"))
            ids = tuple(inserted.inserted_ids)
            return MutationResult(affected_count=len(ids), inserted_ids=ids)
        if operation == "updateOne":
            updated = await collection.update_one(args.get("filter"), args.get("update"), **options)
            return _update_result(updated)
        if operation == "updateMany":
            updated = await collection.update_many(args.get("filter"), args.get("update"), **options)
            return _update_result(updated)
        if operation == "deleteOne":
            deleted = await collection.delete_one(args.get("filter"))
            return MutationResult(affected_count=deleted.deleted_count)
        if operation == "deleteMany":
            deleted = await collection.delete_many(args.get("filter"))
            return MutationResult(affected_count=deleted.deleted_count)
        cursor = collection.aggregate(args.get("pipeline") or [])
        return await cursor.to_list(length=None)

    async def close(self, handle: AsyncIOMotorDatabase) -> None:
        try:
            handle.client.close()
        except Exception as exc:  # pragma: no cover - best effort cleanup
            LOG.debug("Ignoring mongodb close failure", extra={"error": str(exc)})

    def list_tables_query(self) -> None:
        return None

    def table_schema_query(self, table: str) -> Statement:
        return Statement({"collection": table, "operation": "find", "options": {"limit": 1}})

    async def list_tables(self, handle: AsyncIOMotorDatabase) -> list[dict[str, Any]]:
        names = await handle.list_collection_names()
        return [{"name": name} for name in sorted(names)]


def parse_request(query: Any) -> tuple[str, str, dict[str, Any]]:
    """Validate a structured request; return collection, operation, and arguments."""

    if not isinstance(query, Mapping):
        raise MalformedRequestError("MongoDB query must be a mapping with collection and operation")
    args = dict(query)
    collection = args.pop("collection", None)
    operation = args.pop("operation", None)
    if not collection or not operation:
        raise MalformedRequestError("MongoDB query must specify collection and operation")
    if operation not in OPERATIONS:
        raise UnsupportedOperationError(operation)
    return str(collection), operation, args


def _update_result(updated: Any) -> MutationResult:
    upserted = updated.upserted_id
    return MutationResult(affected_count=updated.modified_count, inserted_id=upserted)


__all__ = ["MongoAdapter", "OPERATIONS", "parse_request"]
