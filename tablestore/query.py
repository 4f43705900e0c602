"""
Query variants for multi-record operations.

Query = Predicate(fn) | Match(fields) | Pattern(glob). The facade resolves a
caller's argument once with as_query(); the engine never inspects runtime
shapes after that.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from numbers import Number
from typing import Any, Callable, Iterable, List, Mapping, Optional

from .codec import canonical
from .core.errors import QueryError

SORT_MODES = ("asc", "desc", None)


@dataclass(frozen=True)
class Row:
    """A stored row as SQLite holds it: value is undecoded JSON text."""

    key: str
    value: str


@dataclass(frozen=True)
class Record:
    """A query result: value is decoded."""

    key: str
    value: Any


@dataclass(frozen=True)
class Lookup:
    """Result of get(): value (or default), the full storage key, and the scope the caller passed."""

    value: Any
    key: str
    scope: Any = None


class Query:
    """Base for the three query forms."""

    def describe(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class Predicate(Query):
    """Caller function evaluated against raw Rows (key, undecoded value text)."""

    fn: Callable[[Row], Any]

    def matches(self, row: Row) -> bool:
        return bool(self.fn(row))

    def describe(self) -> str:
        return f"Predicate({getattr(self.fn, '__name__', 'fn')})"


@dataclass(frozen=True)
class Match(Query):
    """Structural equality on the top-level fields of the decoded value."""

    fields: Mapping[str, Any] = field(default_factory=dict)

    def matches(self, value: Any) -> bool:
        if not isinstance(value, dict):
            return False
        for name, expected in self.fields.items():
            if name not in value or not json_equal(value[name], expected):
                return False
        return True

    def describe(self) -> str:
        return f"Match({canonical(dict(self.fields))})"


@dataclass(frozen=True)
class Pattern(Query):
    """
    Key pattern with glob semantics: * any run, ? one character, case-sensitive.
    % is accepted as an alias for * (LIKE-style callers). Without wildcards it is an exact match.
    Underscore is literal, since it is the key separator.
    """

    pattern: str

    def to_glob(self) -> str:
        out = []
        for ch in self.pattern:
            if ch == "%":
                out.append("*")
            elif ch == "[":
                out.append("[[]")
            else:
                out.append(ch)
        return "".join(out)

    def describe(self) -> str:
        return f"Pattern({self.pattern!r})"


def as_query(obj: Any) -> Query:
    """
    Resolve a caller argument to a Query, once, at the API boundary.
    Query passes through; callable -> Predicate; Mapping -> Match; str -> Pattern.
    """
    if isinstance(obj, Query):
        return obj
    if isinstance(obj, str):
        return Pattern(obj)
    if isinstance(obj, Mapping):
        return Match(dict(obj))
    if callable(obj):
        return Predicate(obj)
    raise QueryError(f"Unsupported query of type {type(obj).__name__}; pass a Predicate, Match, or Pattern")


def json_equal(a: Any, b: Any) -> bool:
    """JSON equality: booleans never equal numbers; 1 == 1.0; containers compared recursively."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if isinstance(a, Number) and isinstance(b, Number):
        return a == b
    if isinstance(a, dict) and isinstance(b, Mapping):
        if set(a) != set(b):
            return False
        return all(json_equal(a[k], b[k]) for k in a)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(json_equal(x, y) for x, y in zip(a, b))
    return type(a) is type(b) and a == b


# null < bool < number < string < array < object
def _type_rank(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, Number):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, (list, tuple)):
        return 4
    return 5


def sort_key(value: Any) -> tuple:
    """Total order over decoded values: type rank first, then numeric / lexicographic / canonical text."""
    rank = _type_rank(value)
    if rank == 0:
        return (rank, 0)
    if rank in (1, 2):
        return (rank, value)
    if rank == 3:
        return (rank, value)
    return (rank, canonical(value))


def sort_records(records: Iterable[Record], sort: Optional[str]) -> List[Record]:
    """Stable sort by value. sort=None keeps storage order."""
    if sort not in SORT_MODES:
        raise QueryError(f"Unknown sort mode {sort!r}; expected 'asc', 'desc', or None")
    items = list(records)
    if sort is None:
        return items
    return sorted(items, key=lambda r: sort_key(r.value), reverse=(sort == "desc"))
