"""Adapter contract shared by every backend kind."""

from __future__ import annotations

from typing import Any, Mapping, NamedTuple, Protocol, Sequence, runtime_checkable

from ..errors import MalformedRequestError
from ..models import BackendKind

Params = Sequence[Any] | Mapping[str, Any] | None

READ_KEYWORDS = frozenset({"select", "with", "show", "values", "pragma", "describe", "desc", "explain"})


class Statement(NamedTuple):
    """Canned introspection request routed through the normal query path."""

    query: Any
    params: Params = None


@runtime_checkable
class BackendAdapter(Protocol):
    """Protocol implemented by backend adapters."""

    kind: BackendKind

    async def connect(self, config: Mapping[str, Any]) -> Any:
        """Open a driver handle; raise ``BackendConnectionError`` on failure."""

    async def execute(self, handle: Any, query: Any, params: Params = None) -> Any:
        """Run ``query`` and return a normalized result."""

    async def close(self, handle: Any) -> None:
        """Release ``handle``; never raises."""

    def list_tables_query(self) -> Statement | None:
        """Request listing tables, or ``None`` when :meth:`list_tables` applies."""

    def table_schema_query(self, table: str) -> Statement:
        """Request describing ``table``."""

    async def list_tables(self, handle: Any) -> list[dict[str, Any]]:
        """List tables through a driver metadata call."""


def leading_keyword(statement: str) -> str:
    token = statement.lstrip().split(None, 1)
    if not token:
        return ""
    return token[0].lower()


def returns_rows(statement: str) -> bool:
    """Return True when the statement's leading keyword produces rows."""

    return leading_keyword(statement) in READ_KEYWORDS


def require_sql(query: Any) -> str:
    if not isinstance(query, str):
        raise MalformedRequestError(f"Expected SQL text, got {type(query).__name__}")
    statement = query.strip()
    if not statement:
        raise MalformedRequestError("Provide SQL to execute.")
    return statement


__all__ = [
    "BackendAdapter",
    "Params",
    "READ_KEYWORDS",
    "Statement",
    "leading_keyword",
    "require_sql",
    "returns_rows",
]
