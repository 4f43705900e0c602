"""
Awaitable facade over Database. Each call runs to completion on a worker thread
(asyncio.to_thread); the engine lock still serializes access, and nothing
suspends inside a transaction. Calls are not cancellable once started.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

import pandas as pd

from .database import Database
from .query import Lookup, Record


class AsyncDatabase:
    """Same surface as Database, awaitable. Wraps an existing handle; does not open its own."""

    def __init__(self, database: Database) -> None:
        self.database = database

    async def get(self, table: str, base: str, scope: Any = None) -> Lookup:
        return await asyncio.to_thread(self.database.get, table, base, scope)

    async def has(self, table: str, base: str, scope: Any = None) -> bool:
        return await asyncio.to_thread(self.database.has, table, base, scope)

    async def set(self, table: str, base: str, scope: Any, value: Any) -> Lookup:
        return await asyncio.to_thread(self.database.set, table, base, scope, value)

    async def delete(self, table: str, base: str, scope: Any = None) -> int:
        return await asyncio.to_thread(self.database.delete, table, base, scope)

    async def drop(self, table: str, key: Optional[str] = None) -> None:
        await asyncio.to_thread(self.database.drop, table, key)

    async def ping(self) -> float:
        return await asyncio.to_thread(self.database.ping)

    async def find_one(self, table: str, raw_key: str) -> Optional[Record]:
        return await asyncio.to_thread(self.database.find_one, table, raw_key)

    async def find_many(self, table: str, query: Any, limit: Optional[int] = None) -> List[Record]:
        return await asyncio.to_thread(self.database.find_many, table, query, limit)

    async def delete_many(self, table: str, query: Any) -> int:
        return await asyncio.to_thread(self.database.delete_many, table, query)

    async def all(
        self,
        table: str,
        predicate: Optional[Callable[[Record], Any]] = None,
        limit: Optional[int] = 100,
        sort: Optional[str] = "asc",
    ) -> List[Record]:
        return await asyncio.to_thread(self.database.all, table, predicate, limit, sort)

    async def read_table(self, table: str, limit: Optional[int] = None) -> pd.DataFrame:
        return await asyncio.to_thread(self.database.read_table, table, limit)

    async def close(self) -> None:
        await asyncio.to_thread(self.database.close)
