"""
Database: the single store handle consumers receive.

connect() validates options, opens the engine, creates the configured tables
plus the reserved one in a single transaction, and returns a Database. The
handle is passed explicitly to consumers; there is no global lookup.
init_or_exit() is the startup path for hosts: any configuration or engine
failure is logged and the process exits.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, List, Optional

import pandas as pd

from ._version import __version__
from .codec import decode
from .config import RESERVED_TABLE, StoreOptions
from .core.errors import TableStoreError
from .defaults import DefaultResolver, VariableRegistry, VariableSchema
from .diagnostics import OperationTracer, measure_latency
from .keys import validate_identifier
from .maintenance import Lifecycle, MaintenanceScheduler, Sweep, on_ready
from .query import Lookup, Record, as_query
from .store.engine import SQLiteEngine
from .store.query_engine import QueryEngine
from .store.table_store import TableStore

logger = logging.getLogger(__name__)


class Database:
    """get, set, delete, delete_many, drop, find_one, find_many, all, ping over named tables."""

    def __init__(
        self,
        engine: SQLiteEngine,
        options: StoreOptions,
        *,
        schema: Optional[VariableSchema] = None,
        strict_keys: bool = False,
    ) -> None:
        self.engine = engine
        self.options = options
        self.strict_keys = strict_keys
        self.resolver = DefaultResolver(schema)
        self._tables = TableStore(engine, self.resolver)
        self._queries = QueryEngine(engine)
        self._tracer = OperationTracer(debug=options.debug)
        self._maintenance: Optional[MaintenanceScheduler] = None

    @property
    def debug(self) -> bool:
        return self._tracer.debug

    @debug.setter
    def debug(self, value: bool) -> None:
        self._tracer.debug = bool(value)

    @property
    def tables(self) -> List[str]:
        """Tables present in the file, including the reserved table."""
        return self.engine.tables

    @property
    def reserved_table(self) -> str:
        return RESERVED_TABLE

    # -- single key ---------------------------------------------------------

    def get(self, table: str, base: str, scope: Any = None) -> Lookup:
        return self._tracer.trace("get", (table, base, scope), lambda: self._tables.get(table, base, scope))

    def has(self, table: str, base: str, scope: Any = None) -> bool:
        return self._tracer.trace("has", (table, base, scope), lambda: self._tables.has(table, base, scope))

    def set(self, table: str, base: str, scope: Any, value: Any) -> Lookup:
        def _set() -> Lookup:
            if self.strict_keys:
                validate_identifier(base)
            return self._tables.set(table, base, scope, value)

        return self._tracer.trace("set", (table, base, scope, value), _set)

    def delete(self, table: str, base: str, scope: Any = None) -> int:
        return self._tracer.trace("delete", (table, base, scope), lambda: self._tables.delete(table, base, scope))

    def drop(self, table: str, key: Optional[str] = None) -> None:
        return self._tracer.trace("drop", (table, key), lambda: self._tables.drop(table, key))

    def ping(self) -> float:
        """Elapsed milliseconds for a trivial query. Liveness/latency probe only."""

        def _probe() -> float:
            elapsed = measure_latency(self.engine.ping)
            logger.debug("ping %.3fms", elapsed)
            return elapsed

        return self._tracer.trace("ping", (), _probe)

    # -- multi record -------------------------------------------------------

    def find_one(self, table: str, raw_key: str) -> Optional[Record]:
        return self._tracer.trace("find_one", (table, raw_key), lambda: self._queries.find_one(table, raw_key))

    def find_many(self, table: str, query: Any, limit: Optional[int] = None) -> List[Record]:
        """query: Predicate | Match | Pattern, or a callable / mapping / str resolved by as_query()."""
        q = as_query(query)
        return self._tracer.trace("find_many", (table, q, limit), lambda: self._queries.find_many(table, q, limit))

    def delete_many(self, table: str, query: Any) -> int:
        q = as_query(query)
        return self._tracer.trace("delete_many", (table, q), lambda: self._queries.delete_many(table, q))

    def all(
        self,
        table: str,
        predicate: Optional[Callable[[Record], Any]] = None,
        limit: Optional[int] = 100,
        sort: Optional[str] = "asc",
    ) -> List[Record]:
        return self._tracer.trace(
            "all", (table, predicate, limit, sort), lambda: self._queries.all(table, predicate, limit, sort)
        )

    def read_table(self, table: str, limit: Optional[int] = None) -> pd.DataFrame:
        """Table as a DataFrame with columns key, value (decoded), raw. Storage order."""
        self.engine.require_table(table)
        with self.engine.transaction(write=False) as conn:
            if not self.engine.has_table(table):
                return pd.DataFrame(columns=["key", "value", "raw"])
            q = f"SELECT key, value AS raw FROM {table} ORDER BY rowid"
            if limit is not None:
                q += f" LIMIT {int(limit)}"
            df = pd.read_sql_query(q, conn)
        df.insert(1, "value", [decode(raw, key=k, table=table) for k, raw in zip(df["key"], df["raw"])])
        return df

    # -- lifecycle ----------------------------------------------------------

    def start_maintenance(self, sweep: Sweep, *, immediately: bool = False) -> MaintenanceScheduler:
        """Schedule sweep(self) every options.maintenance_interval_s seconds."""
        if self._maintenance is None:
            self._maintenance = MaintenanceScheduler(self, sweep, self.options.maintenance_interval_s)
        self._maintenance.start(immediately=immediately)
        return self._maintenance

    @property
    def maintenance(self) -> Optional[MaintenanceScheduler]:
        return self._maintenance

    def close(self) -> None:
        """Stop maintenance and close the engine. Idempotent."""
        if self._maintenance is not None:
            self._maintenance.stop()
        self.engine.close()

    @property
    def closed(self) -> bool:
        return self.engine.closed

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def connect(
    options: StoreOptions,
    *,
    schema: Optional[VariableSchema] = None,
    lifecycle: Optional[Lifecycle] = None,
    sweep: Optional[Sweep] = None,
    strict_keys: bool = False,
) -> Database:
    """
    Validate options, open the file, create tables, return the handle.
    schema defaults to a VariableRegistry built from options.variables when that is non-empty.
    With lifecycle and sweep, the maintenance schedule starts on the host's "ready" signal.
    """
    options.validate()
    if schema is None and options.variables:
        schema = VariableRegistry.from_mapping(options.variables)
    engine = SQLiteEngine.open(options.location, busy_timeout_ms=options.busy_timeout_ms)
    try:
        engine.create_tables(options.all_tables)
    except BaseException:
        engine.close()
        raise
    db = Database(engine, options, schema=schema, strict_keys=strict_keys)
    if sweep is not None:
        db._maintenance = MaintenanceScheduler(db, sweep, options.maintenance_interval_s)
        if lifecycle is not None:
            on_ready(lifecycle, db._maintenance)
    if options.logging:
        logger.info(
            "SQLite database connected successfully: loaded %d tables (tablestore v%s)",
            len(options.all_tables),
            __version__,
        )
    return db


def init_or_exit(options: StoreOptions, **kwargs: Any) -> Database:
    """connect(), or log the failure, print it to stderr, and exit. No degraded startup."""
    try:
        return connect(options, **kwargs)
    except TableStoreError as e:
        logger.error("Failed to initialize: %s", e)
        print(f"tablestore: Failed to initialize: {e}", file=sys.stderr)
        raise SystemExit(1) from e
