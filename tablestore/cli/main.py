"""
Top-level CLI dispatcher: tablestore <command> [args...].
Options come from --config / tablestore.yaml / TABLESTORE_* env, with --db and --tables on top.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from .._version import __version__
from ..config import load_options
from ..core.errors import QueryError, TableStoreError
from ..database import Database, connect
from ..query import Match, Pattern, Record


def _parse_value(text: str) -> Any:
    """JSON if it parses, else the literal string."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _match(text: str) -> Match:
    fields = json.loads(text)
    if not isinstance(fields, dict):
        raise QueryError("--match must be a JSON object")
    return Match(fields)


def _records_json(records: List[Record]) -> str:
    return json.dumps([{"key": r.key, "value": r.value} for r in records], indent=2, ensure_ascii=False)


def _open(args: argparse.Namespace) -> Database:
    overrides = {"location": args.db, "tables": args.tables}
    options = load_options(args.config, overrides)
    table = getattr(args, "table", None)
    if not options.tables and table:
        options.tables = [table]
    options.logging = args.verbose
    options.debug = options.debug or args.verbose
    return connect(options)


def _run(args: argparse.Namespace) -> int:
    with _open(args) as db:
        cmd = args.command
        if cmd == "init":
            print(f"Initialized DB: {db.engine.location} ({len(db.tables)} tables)")
        elif cmd == "get":
            found = db.get(args.table, args.base, args.scope)
            print(json.dumps({"key": found.key, "scope": found.scope, "value": found.value}, ensure_ascii=False))
        elif cmd == "set":
            stored = db.set(args.table, args.base, args.scope, _parse_value(args.value))
            print(f"set {args.table}.{stored.key}")
        elif cmd == "delete":
            print(f"deleted {db.delete(args.table, args.base, args.scope)}")
        elif cmd == "find":
            query = _match(args.match) if args.match else Pattern(args.pattern or "*")
            print(_records_json(db.find_many(args.table, query, args.limit)))
        elif cmd == "all":
            sort = None if args.sort == "none" else args.sort
            print(_records_json(db.all(args.table, limit=args.limit, sort=sort)))
        elif cmd == "drop":
            db.drop(args.table, args.key)
            print(f"dropped {args.table}{'.' + args.key if args.key else ''}")
        elif cmd == "ping":
            print(f"{db.ping():.3f} ms")
        elif cmd == "dump":
            df = db.read_table(args.table, limit=args.limit)
            print(df.to_string(index=False) if not df.empty else "(empty)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablestore",
        description="Embedded table-namespaced key-value store on SQLite",
    )
    parser.add_argument("--version", action="version", version=f"tablestore {__version__}")
    parser.add_argument("--config", default=None, help="YAML config path (default: ./tablestore.yaml if present)")
    parser.add_argument("--db", default=None, help="Database file (overrides config location)")
    parser.add_argument("--tables", default=None, help="Comma-separated table names (overrides config tables)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command", help="command")

    subparsers.add_parser("init", help="Create the database file and tables")
    subparsers.add_parser("ping", help="Measure latency of a trivial query")

    p = subparsers.add_parser("get", help="Read a value (falls back to declared defaults)")
    p.add_argument("table")
    p.add_argument("base")
    p.add_argument("scope", nargs="?", default=None)

    p = subparsers.add_parser("set", help="Write a value (JSON, or a plain string)")
    p.add_argument("table")
    p.add_argument("base")
    p.add_argument("scope")
    p.add_argument("value")

    p = subparsers.add_parser("delete", help="Delete a value")
    p.add_argument("table")
    p.add_argument("base")
    p.add_argument("scope", nargs="?", default=None)

    p = subparsers.add_parser("find", help="Find rows by key pattern or field match")
    p.add_argument("table")
    p.add_argument("pattern", nargs="?", default=None, help="Key glob, e.g. 'score_*'")
    p.add_argument("--match", default=None, help='JSON object of fields, e.g. \'{"level": 3}\'')
    p.add_argument("--limit", type=int, default=None)

    p = subparsers.add_parser("all", help="List rows sorted by value")
    p.add_argument("table")
    p.add_argument("--limit", type=int, default=100)
    p.add_argument("--sort", choices=["asc", "desc", "none"], default="asc")

    p = subparsers.add_parser("drop", help="Drop a table, or a single raw key")
    p.add_argument("table")
    p.add_argument("key", nargs="?", default=None)

    p = subparsers.add_parser("dump", help="Print a table as a DataFrame")
    p.add_argument("table")
    p.add_argument("--limit", type=int, default=None)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0
    if args.tables is not None:
        args.tables = [t.strip() for t in args.tables.split(",") if t.strip()]
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return _run(args)
    except TableStoreError as e:
        print(f"{args.command} failed: {e}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as e:
        print(f"{args.command} failed: --match is not valid JSON: {e}", file=sys.stderr)
        return 2
