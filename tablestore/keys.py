"""
Composite storage keys: base alone, or base_scope when a scope is given.

Keys are opaque once built; there is no parse step. Separator characters in
identifiers are not escaped, so "a_b" + "c" and "a" + "b_c" collide.
validate_identifier() rejects a separator in the base for callers that want
the strict form.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from .core.errors import ConfigurationError, QueryError

SEPARATOR = "_"

# Host-managed variables: never resolved against the schema, always scope-qualified.
GLOBAL_KEYS = frozenset({"cooldown", "setTimeout", "ticketChannel"})

# Text forms of "absent" that leak in from upstream string formatting.
_ABSENT_SENTINELS = ("undefined", "None")

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _is_absent(scope: Any) -> bool:
    return scope is None or (isinstance(scope, str) and scope in _ABSENT_SENTINELS)


def strip_absent_suffix(key: str) -> str:
    """Drop a trailing _undefined / _None left by upstream concatenation."""
    for sentinel in _ABSENT_SENTINELS:
        suffix = SEPARATOR + sentinel
        if key.endswith(suffix) and len(key) > len(suffix):
            return key[: -len(suffix)]
    return key


def build_key(base: str, scope: Optional[Any] = None) -> str:
    """
    Return "base" when scope is absent, else "base_scope".
    Non-string scopes (ints, snowflake ids) are formatted with str().
    """
    if _is_absent(scope):
        return strip_absent_suffix(str(base))
    return strip_absent_suffix(f"{base}{SEPARATOR}{scope}")


def is_global(base: str) -> bool:
    """True if base is exempt from default resolution."""
    return base in GLOBAL_KEYS


def validate_identifier(base: str) -> str:
    """Reject a base key that is empty or contains the separator. Returns base unchanged."""
    if not isinstance(base, str) or not base:
        raise QueryError("key base must be a non-empty string")
    if SEPARATOR in base:
        raise QueryError(f"key base {base!r} must not contain {SEPARATOR!r}")
    return base


def validate_table_name(name: str) -> str:
    """
    Table names are interpolated into SQL, so only [A-Za-z_][A-Za-z0-9_]* is accepted.
    They come from trusted configuration; this is a closed input space, not a general escaper.
    """
    if not isinstance(name, str) or not _TABLE_NAME_RE.match(name):
        raise ConfigurationError(f"Invalid table name {name!r}: use letters, digits and underscore only.")
    return name
