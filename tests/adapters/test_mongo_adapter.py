"""Tests for the motor-backed document-store adapter."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest

from dbreader.adapters import MongoAdapter
from dbreader.adapters.mongo import OPERATIONS, parse_request
from dbreader.errors import BackendConnectionError, MalformedRequestError, UnsupportedOperationError
from dbreader.models import BackendKind, MutationResult


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeCursor:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        return list(self._documents)


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in query.items())


class _FakeCollection:
    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self.documents = documents
        self.calls: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def find(self, query: dict[str, Any], **options: Any) -> _FakeCursor:
        self.calls.append(("find", (query,), options))
        found = [doc for doc in self.documents if _matches(doc, query)]
        if "limit" in options:
            found = found[: options["limit"]]
        return _FakeCursor(found)

    async def find_one(self, query: dict[str, Any], **options: Any) -> dict[str, Any] | None:
        self.calls.append(("find_one", (query,), options))
        return next((doc for doc in self.documents if _matches(doc, query)), None)

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        self.documents.append(document)
        return SimpleNamespace(inserted_id=len(self.documents))

    async def insert_many(self, documents: list[dict[str, Any]]) -> SimpleNamespace:
        start = len(self.documents)
        self.documents.extend(documents)
        return SimpleNamespace(inserted_ids=list(range(start + 1, len(self.documents) + 1)))

    async def update_one(self, query: dict[str, Any], update: dict[str, Any], **options: Any) -> SimpleNamespace:
        self.calls.append(("update_one", (query, update), options))
        return SimpleNamespace(modified_count=1, upserted_id=None)

    async def update_many(self, query: dict[str, Any], update: dict[str, Any], **options: Any) -> SimpleNamespace:
        self.calls.append(("update_many", (query, update), options))
        return SimpleNamespace(modified_count=0, upserted_id="new-id")

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        return SimpleNamespace(deleted_count=1)

    async def delete_many(self, query: dict[str, Any]) -> SimpleNamespace:
        matched = [doc for doc in self.documents if _matches(doc, query or {})]
        return SimpleNamespace(deleted_count=len(matched))

    def aggregate(self, pipeline: list[dict[str, Any]]) -> _FakeCursor:
        self.calls.append(("aggregate", (pipeline,), {}))
        return _FakeCursor([{"_id": None, "count": len(self.documents)}])


class _FakeDatabase:
    def __init__(self, collections: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.collections = {name: _FakeCollection(docs) for name, docs in (collections or {}).items()}
        self.accessed: list[str] = []
        self.client = SimpleNamespace(close=self._close)
        self.closed = False

    def __getitem__(self, name: str) -> _FakeCollection:
        self.accessed.append(name)
        return self.collections.setdefault(name, _FakeCollection([]))

    async def list_collection_names(self) -> list[str]:
        return list(self.collections)

    def _close(self) -> None:
        self.closed = True


USERS = [
    {"name": "ada", "active": True},
    {"name": "grace", "active": False},
    {"name": "linus", "active": True},
]


@pytest.mark.anyio
async def test_find_without_filter_matches_everything() -> None:
    db = _FakeDatabase({"users": list(USERS)})

    documents = await MongoAdapter().execute(db, {"collection": "users", "operation": "find"})

    assert documents == USERS
    assert db.collections["users"].calls[0] == ("find", ({},), {})


@pytest.mark.anyio
async def test_find_passes_filter_and_options() -> None:
    db = _FakeDatabase({"users": list(USERS)})

    documents = await MongoAdapter().execute(
        db, {"collection": "users", "operation": "find", "filter": {"active": True}, "options": {"limit": 1}}
    )

    assert documents == [USERS[0]]


@pytest.mark.anyio
async def test_find_one_returns_document_or_none() -> None:
    db = _FakeDatabase({"users": list(USERS)})
    adapter = MongoAdapter()

    found = await adapter.execute(db, {"collection": "users", "operation": "findOne", "filter": {"name": "grace"}})
    missing = await adapter.execute(db, {"collection": "users", "operation": "findOne", "filter": {"name": "bob"}})

    assert found == USERS[1]
    assert missing is None


@pytest.mark.anyio
async def test_inserts_report_ids() -> None:
    db = _FakeDatabase({"users": []})
    adapter = MongoAdapter()

    one = await adapter.execute(db, {"collection": "users", "operation": "insertOne", "document": {"name": "x"}})
    many = await adapter.execute(
        db, {"collection": "users", "operation": "insertMany", "documents": [{"name": "y"}, {"name": "z"}]}
    )

    assert one == MutationResult(affected_count=1, inserted_id=1)
    assert many == MutationResult(affected_count=2, inserted_ids=(2, 3))


@pytest.mark.anyio
async def test_updates_and_deletes_report_counts() -> None:
    db = _FakeDatabase({"users": list(USERS)})
    adapter = MongoAdapter()

    updated = await adapter.execute(
        db,
        {
            "collection": "users",
            "operation": "updateOne",
            "filter": {"name": "ada"},
            "update": {"$set": {"active": False}},
        },
    )
    upserted = await adapter.execute(
        db,
        {
            "collection": "users",
            "operation": "updateMany",
            "filter": {"name": "nobody"},
            "update": {"$set": {"active": True}},
            "options": {"upsert": True},
        },
    )
    deleted = await adapter.execute(db, {"collection": "users", "operation": "deleteMany", "filter": {"active": True}})
    deleted_one = await adapter.execute(db, {"collection": "users", "operation": "deleteOne", "filter": {}})

    assert updated == MutationResult(affected_count=1)
    assert upserted == MutationResult(affected_count=0, inserted_id="new-id")
    assert db.collections["users"].calls[-1] == (
        "update_many",
        ({"name": "nobody"}, {"$set": {"active": True}}),
        {"upsert": True},
    )
    assert deleted == MutationResult(affected_count=2)
    assert deleted_one == MutationResult(affected_count=1)


@pytest.mark.anyio
async def test_aggregate_returns_list() -> None:
    db = _FakeDatabase({"users": list(USERS)})
    pipeline = [{"$group": {"_id": None, "count": {"$sum": 1}}}]

    result = await MongoAdapter().execute(db, {"collection": "users", "operation": "aggregate", "pipeline": pipeline})

    assert result == [{"_id": None, "count": 3}]


@pytest.mark.anyio
async def test_unknown_operation_never_touches_collection() -> None:
    db = _FakeDatabase({"x": []})

    with pytest.raises(UnsupportedOperationError, match="unknownOp"):
        await MongoAdapter().execute(db, {"collection": "x", "operation": "unknownOp"})

    assert db.accessed == []


@pytest.mark.anyio
@pytest.mark.parametrize(
    "request_",
    [{"operation": "find"}, {"collection": "users"}, {"collection": "", "operation": "find"}, "db.users.find()"],
)
async def test_malformed_requests_fail_before_backend_call(request_: Any) -> None:
    db = _FakeDatabase({"users": list(USERS)})

    with pytest.raises(MalformedRequestError):
        await MongoAdapter().execute(db, request_)

    assert db.accessed == []


def test_parse_request_splits_arguments() -> None:
    name, operation, args = parse_request({"collection": "users", "operation": "find", "filter": {"a": 1}})

    assert (name, operation, args) == ("users", "find", {"filter": {"a": 1}})
    assert "aggregate" in OPERATIONS and len(OPERATIONS) == 9


def test_introspection_templates() -> None:
    adapter = MongoAdapter()

    assert adapter.list_tables_query() is None
    schema = adapter.table_schema_query("users")
    assert schema.query == {"collection": "users", "operation": "find", "options": {"limit": 1}}


@pytest.mark.anyio
async def test_list_tables_uses_collection_names() -> None:
    db = _FakeDatabase({"users": [], "orders": []})

    assert await MongoAdapter().list_tables(db) == [{"name": "orders"}, {"name": "users"}]


class _FakeClient:
    instances: list["_FakeClient"] = []

    def __init__(self, url: str, **options: Any) -> None:
        self.url = url
        self.options = options
        self.admin = SimpleNamespace(command=self._command)
        self.closed = False
        _FakeClient.instances.append(self)

    def close(self) -> None:
        self.closed = True

    async def _command(self, name: str) -> dict[str, Any]:
        if "unreachable" in self.url:
            raise RuntimeError("No servers found yet")
        return {"ok": 1}

    def __getitem__(self, name: str) -> SimpleNamespace:
        return SimpleNamespace(name=name, client=self)

    def get_default_database(self, default: str | None = None) -> SimpleNamespace:
        return SimpleNamespace(name=default, client=self)


@pytest.mark.anyio
async def test_connect_builds_url_from_defaults() -> None:
    adapter = MongoAdapter(client_factory=_FakeClient, connect_timeout_ms=100)

    handle = await adapter.connect({"database": "app", "appname": "reader"})

    client = _FakeClient.instances[-1]
    assert client.url == "mongodb://localhost:27017"
    assert client.options == {"appname": "reader", "serverSelectionTimeoutMS": 100}
    assert handle.name == "app"


@pytest.mark.anyio
async def test_connect_without_database_uses_default() -> None:
    adapter = MongoAdapter(client_factory=_FakeClient)

    handle = await adapter.connect({"url": "mongodb://db.internal:27018"})

    assert _FakeClient.instances[-1].url == "mongodb://db.internal:27018"
    assert handle.name == "test"


@pytest.mark.anyio
async def test_connect_failure_propagates_message() -> None:
    adapter = MongoAdapter(client_factory=_FakeClient)

    with pytest.raises(BackendConnectionError, match="^No servers found yet$") as excinfo:
        await adapter.connect({"host": "unreachable"})

    assert excinfo.value.backend_kind is BackendKind.MONGODB


@pytest.mark.anyio
async def test_failed_ping_closes_client() -> None:
    adapter = MongoAdapter(client_factory=_FakeClient)

    with pytest.raises(BackendConnectionError):
        await adapter.connect({"host": "unreachable"})

    assert _FakeClient.instances[-1].closed is True


@pytest.mark.anyio
async def test_successful_connect_keeps_client_open() -> None:
    adapter = MongoAdapter(client_factory=_FakeClient)

    handle = await adapter.connect({"database": "app"})

    assert handle.client.closed is False


@pytest.mark.anyio
async def test_close_closes_client() -> None:
    db = _FakeDatabase()

    await MongoAdapter().close(db)

    assert db.closed is True
