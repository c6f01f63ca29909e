"""Error taxonomy raised by the reader and its adapters."""

from __future__ import annotations

from typing import Any


class DatabaseReaderError(RuntimeError):
    """Base error for reader failures."""


class UnsupportedBackendError(DatabaseReaderError):
    """Raised when a connect request names an unknown backend kind."""

    def __init__(self, backend: Any) -> None:
        super().__init__(f"Unsupported database type: {backend}")
        self.backend = backend


class CapacityExceededError(DatabaseReaderError):
    """Raised when the registry already holds the maximum number of connections."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Maximum connections ({limit}) reached")
        self.limit = limit


class DuplicateConnectionError(DatabaseReaderError):
    """Raised when a caller-supplied id is already registered."""

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"Connection id already in use: {connection_id}")
        self.connection_id = connection_id


class BackendConnectionError(DatabaseReaderError):
    """Raised when a backend handshake fails.

    The message is the driver's own message so it stays diagnosable; the
    original exception is kept on ``cause`` and chained via ``__cause__``.
    """

    def __init__(self, backend_kind: Any, cause: BaseException) -> None:
        super().__init__(str(cause))
        self.backend_kind = backend_kind
        self.cause = cause


class ConnectionNotFoundError(DatabaseReaderError):
    """Raised when a query targets an id that is not registered."""

    def __init__(self, connection_id: str) -> None:
        super().__init__(f"No connection found with id: {connection_id}")
        self.connection_id = connection_id


class RequestError(DatabaseReaderError):
    """Base for request-shape failures that retrying cannot fix."""


class MalformedRequestError(RequestError):
    """Raised when a structured request lacks ``collection`` or ``operation``."""


class UnsupportedOperationError(RequestError):
    """Raised when a structured request names an unknown operation."""

    def __init__(self, operation: Any) -> None:
        super().__init__(f"Unsupported MongoDB operation: {operation}")
        self.operation = operation


__all__ = [
    "BackendConnectionError",
    "CapacityExceededError",
    "ConnectionNotFoundError",
    "DatabaseReaderError",
    "DuplicateConnectionError",
    "MalformedRequestError",
    "RequestError",
    "UnsupportedBackendError",
    "UnsupportedOperationError",
]
