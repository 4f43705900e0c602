"""
Store: SQLite engine handle, table CRUD, and multi-record queries.
No host logic. One engine handle per Database; nothing else opens the file.
"""

from __future__ import annotations

from .engine import SQLiteEngine
from .query_engine import QueryEngine
from .sqlite_session import open_connection, sqlite_conn
from .table_store import TableStore

__all__ = ["QueryEngine", "SQLiteEngine", "TableStore", "open_connection", "sqlite_conn"]
