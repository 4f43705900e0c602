"""
Diagnostics: per-operation trace logging and a latency probe.
Observer only. Never changes a result, never suppresses an error.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Tuple, TypeVar

from .codec import canonical

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_REPR = 200


def _fmt(value: Any) -> str:
    if isinstance(value, (dict, list)):
        try:
            text = canonical(value)
        except (TypeError, ValueError):
            text = repr(value)
    elif callable(value):
        text = getattr(value, "__name__", repr(value))
    elif hasattr(value, "describe"):
        text = value.describe()
    else:
        text = repr(value)
    return text if len(text) <= _MAX_REPR else text[: _MAX_REPR - 3] + "..."


def format_call(op: str, args: Tuple[Any, ...]) -> str:
    return f"{op}({', '.join(_fmt(a) for a in args)})"


def _fmt_result(result: Any) -> str:
    if isinstance(result, list):
        return f"{len(result)} items"
    return _fmt(result)


class OperationTracer:
    """
    Logs "[received] op(args)" before and "[returning] op(args) -> result" after each call
    when debug is on. Lines are emitted synchronously, so log order is operation order.
    """

    def __init__(self, debug: bool = False, log: Optional[logging.Logger] = None) -> None:
        self.debug = debug
        self._log = log if log is not None else logger

    def trace(self, op: str, args: Tuple[Any, ...], fn: Callable[[], T]) -> T:
        if not self.debug:
            return fn()
        call = format_call(op, args)
        self._log.debug("[received] %s", call)
        try:
            result = fn()
        except Exception as e:
            self._log.debug("[failed] %s -> %s: %s", call, type(e).__name__, e)
            raise
        self._log.debug("[returning] %s -> %s", call, _fmt_result(result))
        return result


def measure_latency(fn: Callable[[], Any]) -> float:
    """Run fn and return elapsed wall-clock milliseconds."""
    start = time.perf_counter()
    fn()
    return (time.perf_counter() - start) * 1000.0
