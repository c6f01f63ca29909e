"""Unified connect/query/introspect layer over several database drivers."""

from __future__ import annotations

__version__ = "0.1.0"

from .config import ConnectionProfileConfig, ReaderConfig, RetryPolicy, load_config
from .errors import (
    BackendConnectionError,
    CapacityExceededError,
    ConnectionNotFoundError,
    DatabaseReaderError,
    DuplicateConnectionError,
    MalformedRequestError,
    RequestError,
    UnsupportedBackendError,
    UnsupportedOperationError,
)
from .models import REDACTED, BackendKind, ConnectionInfo, MutationResult
from .reader import DatabaseReader

__all__ = [
    "BackendConnectionError",
    "BackendKind",
    "CapacityExceededError",
    "ConnectionInfo",
    "ConnectionNotFoundError",
    "ConnectionProfileConfig",
    "DatabaseReader",
    "DatabaseReaderError",
    "DuplicateConnectionError",
    "MalformedRequestError",
    "MutationResult",
    "REDACTED",
    "ReaderConfig",
    "RequestError",
    "RetryPolicy",
    "UnsupportedBackendError",
    "UnsupportedOperationError",
    "__version__",
    "load_config",
]
