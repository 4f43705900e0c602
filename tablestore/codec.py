"""
Value codec: JSON text in, JSON text out.
encode() is total for JSON-representable values; decode() is total for anything encode() produced.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from .core.errors import DecodeError, EncodeError


def encode(value: Any) -> str:
    """Serialize value to compact JSON text. NaN/Infinity and non-JSON types raise EncodeError."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Value of type {type(value).__name__} is not JSON-representable: {e}") from e


def decode(text: Any, *, key: Optional[str] = None, table: Optional[str] = None) -> Any:
    """Parse stored text back into a value. Malformed text raises DecodeError carrying the text."""
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError("Stored value is not UTF-8", text=text, key=key, table=table) from e
    if not isinstance(text, str):
        raise DecodeError(
            f"Stored value has type {type(text).__name__}, expected JSON text",
            text=text,
            key=key,
            table=table,
        )
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        where = f" at {table}.{key}" if table and key else ""
        raise DecodeError(f"Malformed stored value{where}: {e.msg}", text=text, key=key, table=table) from e


def canonical(value: Any) -> str:
    """Deterministic text form (sorted keys) used for ordering and equality of nested values."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
