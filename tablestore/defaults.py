"""
Default resolution against the host's variable schema.

The store consults the schema only on a confirmed miss for a non-global base
key. Results are never cached: every miss re-queries the schema, so a
declaration added or changed at runtime is visible on the next read. Adding a
cache here needs an invalidation story first.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class VariableSchema(Protocol):
    """Consumed interface. get() returns a mapping with "default", or an object with .default."""

    def has(self, base: str, table: str) -> bool: ...

    def get(self, base: str, table: str) -> Any: ...


def _default_of(declaration: Any) -> Any:
    if declaration is None:
        return None
    if isinstance(declaration, Mapping):
        return declaration.get("default")
    return getattr(declaration, "default", None)


class DefaultResolver:
    """Bridge from a store miss to the schema's declared default."""

    def __init__(self, schema: Optional[VariableSchema] = None) -> None:
        self.schema = schema

    def resolve(self, table: str, base: str) -> Any:
        """Return a copy of the declared default for (table, base), or None if undeclared."""
        if self.schema is None:
            return None
        if not self.schema.has(base, table):
            return None
        value = _default_of(self.schema.get(base, table))
        logger.debug("default resolved for %s.%s", table, base)
        # Callers may mutate what they get back; the declaration must stay intact.
        return copy.deepcopy(value)


class VariableRegistry:
    """
    In-process VariableSchema. add(name, default, table=None) declares a default;
    table=None applies to every table unless a table-specific declaration exists.
    """

    def __init__(self) -> None:
        self._declarations: Dict[Tuple[Optional[str], str], Dict[str, Any]] = {}

    def add(self, name: str, default: Any = None, table: Optional[str] = None) -> "VariableRegistry":
        self._declarations[(table, name)] = {"name": name, "table": table, "default": default}
        return self

    def remove(self, name: str, table: Optional[str] = None) -> bool:
        return self._declarations.pop((table, name), None) is not None

    def _lookup(self, base: str, table: str) -> Optional[Dict[str, Any]]:
        found = self._declarations.get((table, base))
        if found is None:
            found = self._declarations.get((None, base))
        return found

    def has(self, base: str, table: str) -> bool:
        return self._lookup(base, table) is not None

    def get(self, base: str, table: str) -> Optional[Dict[str, Any]]:
        return self._lookup(base, table)

    def __len__(self) -> int:
        return len(self._declarations)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Mapping[str, Any]]) -> "VariableRegistry":
        """Build from {table: {name: default}}. The table name "*" declares for every table."""
        registry = cls()
        for table, variables in (mapping or {}).items():
            if not isinstance(variables, Mapping):
                raise TypeError(f"variables for table {table!r} must be a mapping of name -> default")
            for name, default in variables.items():
                registry.add(str(name), default, None if table == "*" else str(table))
        return registry
