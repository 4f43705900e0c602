"""Diagnostics: trace lines are emitted in order, results unchanged, errors never swallowed."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from tablestore import StoreOptions, connect
from tablestore.core.errors import QueryError, StorageEngineError
from tablestore.diagnostics import OperationTracer, format_call, measure_latency

LOGGER = "tablestore.diagnostics"


def test_tracer_off_emits_nothing(caplog):
    tracer = OperationTracer(debug=False)
    with caplog.at_level(logging.DEBUG, logger=LOGGER):
        assert tracer.trace("get", ("main", "k"), lambda: 3) == 3
    assert caplog.records == []


def test_tracer_logs_received_then_returning(caplog):
    tracer = OperationTracer(debug=True)
    with caplog.at_level(logging.DEBUG, logger=LOGGER):
        assert tracer.trace("set", ("main", "k", None, {"a": 1}), lambda: "ok") == "ok"
    messages = [r.getMessage() for r in caplog.records]
    assert messages == [
        "[received] set('main', 'k', None, {\"a\":1})",
        "[returning] set('main', 'k', None, {\"a\":1}) -> 'ok'",
    ]


def test_tracer_reraises(caplog):
    tracer = OperationTracer(debug=True)

    def boom():
        raise ValueError("bad")

    with caplog.at_level(logging.DEBUG, logger=LOGGER):
        with pytest.raises(ValueError, match="bad"):
            tracer.trace("get", ("main",), boom)
    assert caplog.records[-1].getMessage().startswith("[failed] get('main') -> ValueError: bad")


def test_format_call_truncates_long_values():
    text = format_call("set", ("x" * 500,))
    assert len(text) < 260
    assert text.endswith("...)")


def test_format_call_names_functions():
    def only_even(row):
        return True

    assert format_call("find_many", ("main", only_even)) == "find_many('main', only_even)"


def test_database_debug_traces_operations(tmp_path: Path, caplog):
    options = StoreOptions(location=str(tmp_path / "t.sqlite"), tables=["main"], debug=True)
    with connect(options) as db:
        with caplog.at_level(logging.DEBUG, logger=LOGGER):
            db.set("main", "score", "u", 1)
            db.get("main", "score", "u")
            db.find_many("main", "score_*")
            with pytest.raises(StorageEngineError):
                db.get("bad name", "x")
    ops = [r.getMessage().split("(")[0] for r in caplog.records]
    assert ops == [
        "[received] set",
        "[returning] set",
        "[received] get",
        "[returning] get",
        "[received] find_many",
        "[returning] find_many",
        "[received] get",
        "[failed] get",
    ]
    assert caplog.records[5].getMessage().endswith("-> 1 items")


def test_debug_toggle_at_runtime(tmp_path: Path, caplog):
    with connect(StoreOptions(location=str(tmp_path / "t.sqlite"), tables=["main"])) as db:
        assert db.debug is False
        db.debug = True
        with caplog.at_level(logging.DEBUG, logger=LOGGER):
            db.ping()
    assert any(r.getMessage().startswith("[returning] ping()") for r in caplog.records)


def test_measure_latency():
    assert measure_latency(lambda: None) >= 0.0


def test_strict_key_rejection_is_traced(tmp_path: Path, caplog):
    options = StoreOptions(location=str(tmp_path / "t.sqlite"), tables=["main"], debug=True)
    with connect(options, strict_keys=True) as db:
        with caplog.at_level(logging.DEBUG, logger=LOGGER):
            with pytest.raises(QueryError, match="must not contain"):
                db.set("main", "high_score", "u", 1)
    ops = [r.getMessage().split("(")[0] for r in caplog.records]
    assert ops == ["[received] set", "[failed] set"]
