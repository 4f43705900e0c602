"""Maintenance scheduling: ready signal, periodic sweep, failures logged and schedule kept."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path

import pytest

from tablestore import RESERVED_TABLE, StoreOptions, connect
from tablestore.maintenance import MaintenanceScheduler, on_ready


class FakeLifecycle:
    """Minimal once(event, cb) emitter."""

    def __init__(self):
        self.listeners = {}

    def once(self, event, callback):
        self.listeners.setdefault(event, []).append(callback)

    def emit(self, event, *args):
        for cb in self.listeners.pop(event, []):
            cb(*args)


def _wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_run_once_calls_sweep_with_target():
    seen = []
    sched = MaintenanceScheduler("target", seen.append, interval_s=60)
    assert sched.run_once() is True
    assert seen == ["target"]
    assert sched.runs == 1


def test_failing_sweep_is_logged_not_raised(caplog):
    def bad(_target):
        raise RuntimeError("sweep broke")

    sched = MaintenanceScheduler(None, bad, interval_s=60)
    with caplog.at_level(logging.ERROR, logger="tablestore.maintenance"):
        assert sched.run_once() is False
    assert "maintenance sweep failed" in caplog.text


def test_periodic_schedule_and_stop():
    hits = threading.Event()
    count = []

    def sweep(_target):
        count.append(1)
        if len(count) >= 3:
            hits.set()

    sched = MaintenanceScheduler(None, sweep, interval_s=0.02)
    sched.start()
    sched.start()  # idempotent
    try:
        assert hits.wait(2.0)
    finally:
        sched.stop()
    assert not sched.running
    settled = len(count)
    time.sleep(0.1)
    assert len(count) <= settled + 1


def test_schedule_continues_after_failure():
    calls = []

    def flaky(_target):
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    sched = MaintenanceScheduler(None, flaky, interval_s=0.02)
    sched.start()
    try:
        assert _wait_for(lambda: len(calls) >= 2)
    finally:
        sched.stop()


def test_invalid_interval():
    with pytest.raises(ValueError):
        MaintenanceScheduler(None, lambda t: None, interval_s=0)


def test_on_ready_starts_with_immediate_sweep():
    seen = []
    sched = MaintenanceScheduler("db", seen.append, interval_s=3600)
    life = FakeLifecycle()
    on_ready(life, sched)
    assert seen == []
    life.emit("ready")
    try:
        assert seen == ["db"]
        assert sched.running
    finally:
        sched.stop()


def test_connect_wires_lifecycle_to_reserved_table_sweep(tmp_path: Path):
    def sweep(database):
        database.delete_many(RESERVED_TABLE, lambda row: row.key.startswith("expired_"))

    life = FakeLifecycle()
    options = StoreOptions(location=str(tmp_path / "m.sqlite"), tables=["main"])
    with connect(options, lifecycle=life, sweep=sweep) as db:
        db.set(RESERVED_TABLE, "expired", "1", True)
        db.set(RESERVED_TABLE, "live", "1", True)
        assert db.maintenance is not None and not db.maintenance.running
        life.emit("ready")
        assert db.maintenance.running
        assert [r.key for r in db.find_many(RESERVED_TABLE, "*")] == ["live_1"]
    assert not db.maintenance.running


def test_start_maintenance_without_lifecycle(tmp_path: Path):
    seen = []
    options = StoreOptions(location=str(tmp_path / "m.sqlite"), tables=["main"], maintenance_interval_s=3600)
    with connect(options) as db:
        sched = db.start_maintenance(seen.append, immediately=True)
        assert seen == [db]
        assert sched.interval_s == 3600
        assert db.start_maintenance(seen.append) is sched
