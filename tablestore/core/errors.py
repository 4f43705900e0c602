"""
Shared exception types for tablestore.
Stable surface; extend only.
"""

from __future__ import annotations

from typing import Optional


class TableStoreError(Exception):
    """Base exception for tablestore; catch this for any package-raised error."""

    pass


class ConfigurationError(TableStoreError):
    """Bad or missing startup options. Fatal: no store is usable."""

    pass


class StorageEngineError(TableStoreError):
    """I/O or constraint failure from SQLite. The original sqlite3 error is chained as __cause__."""

    def __init__(self, message: str, *, table: Optional[str] = None) -> None:
        super().__init__(message)
        self.table = table


# Short name used throughout the query layer.
StorageError = StorageEngineError


class DecodeError(StorageEngineError):
    """Stored text is not valid JSON. Never silently defaulted to None."""

    def __init__(self, message: str, *, text: object = None, key: Optional[str] = None, table: Optional[str] = None) -> None:
        super().__init__(message, table=table)
        self.text = text
        self.key = key


class EncodeError(TableStoreError, TypeError):
    """Value is not JSON-representable."""

    pass


class QueryError(TableStoreError, ValueError):
    """Query argument has an unsupported shape, or sort mode is unknown."""

    pass


__all__ = [
    "ConfigurationError",
    "DecodeError",
    "EncodeError",
    "QueryError",
    "StorageEngineError",
    "StorageError",
    "TableStoreError",
]
