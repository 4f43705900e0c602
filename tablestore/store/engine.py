"""
Engine handle: one SQLite connection, one lock, one transaction per public call.

Every table is (key TEXT PRIMARY KEY, value TEXT). Table names are interpolated
into SQL after check_table(); that is the only place a name reaches SQL.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterable, List, Optional, Set, Union

from ..core.errors import ConfigurationError, StorageEngineError
from ..keys import validate_table_name
from .sqlite_session import open_connection

logger = logging.getLogger(__name__)


class SQLiteEngine:
    """Owns the connection. TableStore and QueryEngine are the only callers of transaction()."""

    def __init__(self, conn: sqlite3.Connection, *, location: str = "") -> None:
        self._conn = conn
        self._lock = threading.RLock()
        self._closed = False
        self.location = location
        self._tables: Set[str] = self._load_table_names()
        self._configured: Set[str] = set()

    @classmethod
    def open(cls, location: Union[str, Path], *, busy_timeout_ms: int = 5000) -> "SQLiteEngine":
        try:
            conn = open_connection(location, busy_timeout_ms=busy_timeout_ms)
        except (sqlite3.Error, OSError) as e:
            raise StorageEngineError(f"Cannot open database at {location}: {e}") from e
        logger.debug("opened %s", location)
        return cls(conn, location=str(location))

    def _load_table_names(self) -> Set[str]:
        cur = self._conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        return {row[0] for row in cur.fetchall()}

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def tables(self) -> List[str]:
        """Tables currently present in the file, sorted."""
        with self._lock:
            return sorted(self._tables)

    def has_table(self, table: str) -> bool:
        with self._lock:
            return table in self._tables

    @staticmethod
    def check_table(table: str) -> str:
        """Runtime guard for table names reaching SQL. Raises StorageEngineError, not ConfigurationError."""
        try:
            return validate_table_name(table)
        except ConfigurationError as e:
            raise StorageEngineError(str(e), table=table if isinstance(table, str) else None) from e

    def require_table(self, table: str) -> str:
        """
        check_table(), then reject names that were never passed to create_tables().
        A configured table that was dropped still passes; it reads as empty until the next set.
        """
        self.check_table(table)
        with self._lock:
            if table not in self._configured:
                raise StorageEngineError(f"no such table: {table}", table=table)
        return table

    @contextmanager
    def transaction(self, *, write: bool = True) -> Generator[sqlite3.Connection, None, None]:
        """
        BEGIN IMMEDIATE (or deferred BEGIN for reads) ... COMMIT, or ROLLBACK on any exception.
        sqlite3.Error is re-raised as StorageEngineError; everything else propagates unchanged.
        """
        with self._lock:
            if self._closed:
                raise StorageEngineError("Database is closed")
            tables_before = set(self._tables)
            try:
                self._conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            except sqlite3.Error as e:
                raise StorageEngineError(f"Cannot begin transaction: {e}") from e
            try:
                yield self._conn
            except sqlite3.Error as e:
                self._rollback(tables_before)
                raise StorageEngineError(str(e)) from e
            except BaseException:
                self._rollback(tables_before)
                raise
            else:
                try:
                    self._conn.execute("COMMIT")
                except sqlite3.Error as e:
                    self._rollback(tables_before)
                    raise StorageEngineError(f"Commit failed: {e}") from e

    def _rollback(self, tables_before: Set[str]) -> None:
        # DDL rolls back with the transaction, so the name cache does too.
        self._tables = tables_before
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.debug("rollback after failure also failed", exc_info=True)

    def create_table(self, conn: sqlite3.Connection, table: str) -> None:
        """CREATE TABLE IF NOT EXISTS inside the caller's transaction."""
        self.check_table(table)
        conn.execute(f"CREATE TABLE IF NOT EXISTS {table} (key TEXT PRIMARY KEY, value TEXT)")
        self._tables.add(table)

    def create_tables(self, tables: Iterable[str]) -> None:
        """Create every table in one transaction and mark them configured. Idempotent."""
        names = list(tables)
        for name in names:
            self.check_table(name)
        with self.transaction() as conn:
            for name in names:
                self.create_table(conn, name)
        with self._lock:
            self._configured.update(names)
        logger.debug("tables ready: %s", ", ".join(names))

    def drop_table(self, conn: sqlite3.Connection, table: str) -> None:
        """DROP TABLE IF EXISTS inside the caller's transaction."""
        self.check_table(table)
        conn.execute(f"DROP TABLE IF EXISTS {table}")
        self._tables.discard(table)

    def ping(self) -> None:
        with self.transaction(write=False) as conn:
            conn.execute("SELECT 1").fetchone()

    def close(self) -> None:
        """Close the connection. Idempotent: safe to call multiple times."""
        with self._lock:
            if self._closed:
                return
            try:
                self._conn.close()
            finally:
                self._closed = True

    def journal_mode(self) -> Optional[str]:
        with self._lock:
            row = self._conn.execute("PRAGMA journal_mode").fetchone()
        return row[0] if row else None
