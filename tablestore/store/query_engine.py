"""
Multi-record retrieval: find_one, find_many, delete_many, all.

find_many and delete_many select rows through the same _select(), so a
delete_many removes exactly what find_many would report for the same query.
Any failure (engine, decode, caller predicate) fails the whole call.

Predicate callbacks run while the engine lock is held and the transaction is
open, so a predicate must not call back into the same store; doing so fails
with a StorageEngineError ("cannot start a transaction within a transaction").
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Callable, List, Optional

from ..codec import decode
from ..core.errors import QueryError
from ..query import Match, Pattern, Predicate, Query, Record, Row, sort_records
from .engine import SQLiteEngine

logger = logging.getLogger(__name__)


def _check_limit(limit: Optional[int]) -> Optional[int]:
    if limit is None:
        return None
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise QueryError(f"limit must be a non-negative int, got {limit!r}")
    return limit


class QueryEngine:
    """Query-side operations over the shared engine handle."""

    def __init__(self, engine: SQLiteEngine) -> None:
        self.engine = engine

    def _select(self, conn: sqlite3.Connection, table: str, query: Query) -> List[Record]:
        """Rows matching query, decoded, in storage order. Runs inside the caller's transaction."""
        if not self.engine.has_table(table):
            return []
        if isinstance(query, Pattern):
            cur = conn.execute(
                f"SELECT key, value FROM {table} WHERE key GLOB ? ORDER BY rowid",
                (query.to_glob(),),
            )
            return [Record(key=k, value=decode(v, key=k, table=table)) for k, v in cur.fetchall()]

        cur = conn.execute(f"SELECT key, value FROM {table} ORDER BY rowid")
        rows = cur.fetchall()
        if isinstance(query, Predicate):
            return [
                Record(key=k, value=decode(v, key=k, table=table))
                for k, v in rows
                if query.matches(Row(key=k, value=v))
            ]
        if isinstance(query, Match):
            out = []
            for k, v in rows:
                value = decode(v, key=k, table=table)
                if query.matches(value):
                    out.append(Record(key=k, value=value))
            return out
        raise QueryError(f"Unsupported query {query!r}")

    def find_one(self, table: str, raw_key: str) -> Optional[Record]:
        """Exact lookup by an already-composed key."""
        self.engine.require_table(table)
        with self.engine.transaction(write=False) as conn:
            if not self.engine.has_table(table):
                return None
            row = conn.execute(f"SELECT key, value FROM {table} WHERE key = ?", (raw_key,)).fetchone()
        if row is None:
            return None
        return Record(key=row[0], value=decode(row[1], key=row[0], table=table))

    def find_many(self, table: str, query: Query, limit: Optional[int] = None) -> List[Record]:
        """
        Filter first, then cap at limit.
        A Predicate runs inside the read transaction and must not re-enter the store.
        """
        self.engine.require_table(table)
        limit = _check_limit(limit)
        with self.engine.transaction(write=False) as conn:
            results = self._select(conn, table, query)
        return results if limit is None else results[:limit]

    def delete_many(self, table: str, query: Query) -> int:
        """
        Delete every row find_many(table, query) would return, in one transaction. Returns count.
        A Predicate runs inside the write transaction and must not re-enter the store.
        """
        self.engine.require_table(table)
        with self.engine.transaction() as conn:
            matches = self._select(conn, table, query)
            if not matches:
                return 0
            conn.executemany(f"DELETE FROM {table} WHERE key = ?", [(r.key,) for r in matches])
        logger.debug("delete_many %s removed %d rows", table, len(matches))
        return len(matches)

    def all(
        self,
        table: str,
        predicate: Optional[Callable[[Record], Any]] = None,
        limit: Optional[int] = 100,
        sort: Optional[str] = "asc",
    ) -> List[Record]:
        """Decode every row, filter on the decoded Record, sort by value, then truncate."""
        self.engine.require_table(table)
        limit = _check_limit(limit)
        if sort not in ("asc", "desc", None):
            raise QueryError(f"Unknown sort mode {sort!r}; expected 'asc', 'desc', or None")
        with self.engine.transaction(write=False) as conn:
            if not self.engine.has_table(table):
                return []
            rows = conn.execute(f"SELECT key, value FROM {table} ORDER BY rowid").fetchall()
        records = [Record(key=k, value=decode(v, key=k, table=table)) for k, v in rows]
        if predicate is not None:
            records = [r for r in records if predicate(r)]
        records = sort_records(records, sort)
        return records if limit is None else records[:limit]
