"""
SQLite connection lifecycle: WAL pragmas at open, context manager with guaranteed close.
Use sqlite_conn for short-lived access (CLI inspect, tests); Database owns its own long-lived handle.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Union

MEMORY = ":memory:"


def _resolve(db_path: Union[str, Path]) -> str:
    if str(db_path) == MEMORY:
        return MEMORY
    path = Path(db_path).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return str(path)


def apply_pragmas(conn: sqlite3.Connection, busy_timeout_ms: int = 5000) -> None:
    """One writer, many readers: journal_mode=WAL, plus the lock-wait timeout."""
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")


def open_connection(
    db_path: Union[str, Path],
    *,
    busy_timeout_ms: int = 5000,
    check_same_thread: bool = False,
) -> sqlite3.Connection:
    """
    Open a connection in autocommit mode (isolation_level=None); callers issue BEGIN/COMMIT themselves.
    Parent directories are created as needed.
    """
    conn = sqlite3.connect(_resolve(db_path), isolation_level=None, check_same_thread=check_same_thread)
    try:
        apply_pragmas(conn, busy_timeout_ms)
    except sqlite3.Error:
        conn.close()
        raise
    return conn


@contextmanager
def sqlite_conn(db_path: Union[str, Path], busy_timeout_ms: int = 5000) -> Generator[sqlite3.Connection, None, None]:
    """Yield a WAL-mode connection that is always closed on exit."""
    conn = open_connection(db_path, busy_timeout_ms=busy_timeout_ms, check_same_thread=True)
    try:
        yield conn
    finally:
        conn.close()
