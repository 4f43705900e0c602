"""
Periodic maintenance sweep against the reserved table.

The sweep itself is supplied by the host (sweep(database) -> None). This
module only schedules it: once when the host signals "ready", then every
interval seconds on a daemon timer. A failing sweep is logged and the
schedule continues; it never touches the caller's operations.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 3600.0

Sweep = Callable[[Any], None]


class Lifecycle(Protocol):
    """Host signal source: once("ready", callback) registers a one-shot listener."""

    def once(self, event: str, callback: Callable[..., Any]) -> Any: ...


class MaintenanceScheduler:
    """Runs sweep(target) every interval_s seconds until stop()."""

    def __init__(self, target: Any, sweep: Sweep, interval_s: float = DEFAULT_INTERVAL_S) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._target = target
        self._sweep = sweep
        self.interval_s = float(interval_s)
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._running = False
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._running

    def run_once(self) -> bool:
        """Run the sweep now. Returns False if it raised (the error is logged)."""
        try:
            self._sweep(self._target)
            return True
        except Exception:
            logger.exception("maintenance sweep failed")
            return False
        finally:
            self.runs += 1

    def _schedule(self) -> None:
        timer = threading.Timer(self.interval_s, self._tick)
        timer.daemon = True
        timer.name = "tablestore-maintenance"
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        with self._lock:
            if not self._running:
                return
        self.run_once()
        with self._lock:
            if self._running:
                self._schedule()

    def start(self, *, immediately: bool = False) -> None:
        """Start the schedule. Idempotent. immediately=True also runs one sweep before scheduling."""
        with self._lock:
            if self._running:
                return
            self._running = True
        if immediately:
            self.run_once()
        with self._lock:
            if self._running:
                self._schedule()
        logger.debug("maintenance scheduled every %.0fs", self.interval_s)

    def stop(self) -> None:
        """Cancel the pending timer. Idempotent."""
        with self._lock:
            self._running = False
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()


def on_ready(lifecycle: Lifecycle, scheduler: MaintenanceScheduler) -> None:
    """Register with the host: first sweep and schedule start when "ready" fires."""

    def _ready(*_args: Any, **_kwargs: Any) -> None:
        scheduler.start(immediately=True)

    lifecycle.once("ready", _ready)
