"""
Stable facade: exception types only. No store, codec, or cli.
Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    QueryError,
    StorageEngineError,
    StorageError,
    TableStoreError,
)

__all__ = [
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "QueryError",
    "StorageEngineError",
    "StorageError",
    "TableStoreError",
]
