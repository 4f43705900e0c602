"""
Top-level public API surface. Embedded, table-namespaced key-value store on SQLite.
Canonical entrypoint: import tablestore; db = tablestore.connect(StoreOptions(...)).
Does not import cli.
"""

from __future__ import annotations

from ._version import __version__
from .config import RESERVED_TABLE, StoreOptions, load_options
from .core.errors import (
    ConfigurationError,
    DecodeError,
    EncodeError,
    QueryError,
    StorageEngineError,
    StorageError,
    TableStoreError,
)
from .database import Database, connect, init_or_exit
from .defaults import VariableRegistry, VariableSchema
from .keys import GLOBAL_KEYS, build_key
from .query import Lookup, Match, Pattern, Predicate, Query, Record, Row

# Do not add exports without updating __all__.
__all__ = [
    "ConfigurationError",
    "Database",
    "DecodeError",
    "EncodeError",
    "GLOBAL_KEYS",
    "Lookup",
    "Match",
    "Pattern",
    "Predicate",
    "Query",
    "QueryError",
    "RESERVED_TABLE",
    "Record",
    "Row",
    "StorageEngineError",
    "StorageError",
    "StoreOptions",
    "TableStoreError",
    "VariableRegistry",
    "VariableSchema",
    "__version__",
    "build_key",
    "connect",
    "init_or_exit",
    "load_options",
]
