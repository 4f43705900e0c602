"""
Single-key CRUD against a table. One engine transaction per call.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..codec import decode, encode
from ..defaults import DefaultResolver
from ..keys import build_key, is_global
from ..query import Lookup
from .engine import SQLiteEngine

logger = logging.getLogger(__name__)


class TableStore:
    """
    get / set / delete / drop / has over the configured tables.
    A dropped table reads as empty and the next set recreates it; any other name raises.
    """

    def __init__(self, engine: SQLiteEngine, resolver: Optional[DefaultResolver] = None) -> None:
        self.engine = engine
        self.resolver = resolver if resolver is not None else DefaultResolver()

    def _read_raw(self, table: str, key: str) -> Optional[tuple]:
        with self.engine.transaction(write=False) as conn:
            if not self.engine.has_table(table):
                return None
            return conn.execute(f"SELECT key, value FROM {table} WHERE key = ?", (key,)).fetchone()

    def get(self, table: str, base: str, scope: Any = None) -> Lookup:
        """
        Stored value on a hit. On a miss: the schema default for non-global bases, else None.
        The resolver is consulted after the read transaction closes, and only on a miss.
        """
        self.engine.require_table(table)
        key = build_key(base, scope)
        row = self._read_raw(table, key)
        if row is not None:
            return Lookup(value=decode(row[1], key=key, table=table), key=key, scope=scope)
        if is_global(base):
            return Lookup(value=None, key=key, scope=scope)
        return Lookup(value=self.resolver.resolve(table, base), key=key, scope=scope)

    def has(self, table: str, base: str, scope: Any = None) -> bool:
        self.engine.require_table(table)
        return self._read_raw(table, build_key(base, scope)) is not None

    def set(self, table: str, base: str, scope: Any, value: Any) -> Lookup:
        """Insert or replace. Encoding happens before the transaction opens."""
        self.engine.require_table(table)
        key = build_key(base, scope)
        text = encode(value)
        with self.engine.transaction() as conn:
            if not self.engine.has_table(table):
                logger.info("recreating dropped table %s", table)
                self.engine.create_table(conn, table)
            conn.execute(f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)", (key, text))
        return Lookup(value=value, key=key, scope=scope)

    def delete(self, table: str, base: str, scope: Any = None) -> int:
        """Delete one row. Returns rows removed (0 or 1); a missing row is not an error."""
        self.engine.require_table(table)
        return self._delete_key(table, build_key(base, scope))

    def _delete_key(self, table: str, key: str) -> int:
        with self.engine.transaction() as conn:
            if not self.engine.has_table(table):
                return 0
            return conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,)).rowcount

    def drop(self, table: str, key: Optional[str] = None) -> None:
        """With key: delete that raw row. Without: DROP TABLE IF EXISTS. Both idempotent."""
        self.engine.require_table(table)
        if key is not None:
            self._delete_key(table, key)
            return
        with self.engine.transaction() as conn:
            self.engine.drop_table(conn, table)
        logger.info("dropped table %s", table)
