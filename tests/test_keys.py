"""Composite key construction: base, base_scope, absent-sentinel stripping, identifier checks."""

from __future__ import annotations

import pytest

from tablestore.core.errors import ConfigurationError
from tablestore.keys import (
    GLOBAL_KEYS,
    build_key,
    is_global,
    strip_absent_suffix,
    validate_identifier,
    validate_table_name,
)


def test_build_key_base_only():
    assert build_key("score") == "score"
    assert build_key("score", None) == "score"


def test_build_key_with_scope():
    assert build_key("score", "user1") == "score_user1"


def test_build_key_formats_non_string_scope():
    assert build_key("money", 1234567890) == "money_1234567890"


@pytest.mark.parametrize("sentinel", ["undefined", "None"])
def test_build_key_sentinel_scope_degrades_to_base(sentinel):
    assert build_key("score", sentinel) == "score"


def test_strip_absent_suffix_on_precomposed_key():
    assert strip_absent_suffix("score_undefined") == "score"
    assert strip_absent_suffix("score_user1") == "score_user1"
    # A key that is only the suffix is left alone.
    assert strip_absent_suffix("_undefined") == "_undefined"


def test_separator_collision_is_not_escaped():
    """Documented limitation: separators in identifiers are not escaped."""
    assert build_key("a_b", "c") == build_key("a", "b_c")


def test_global_keys():
    assert {"cooldown", "setTimeout", "ticketChannel"} <= GLOBAL_KEYS
    assert is_global("cooldown")
    assert not is_global("score")


def test_validate_identifier_rejects_separator():
    assert validate_identifier("score") == "score"
    with pytest.raises(ValueError, match="must not contain"):
        validate_identifier("high_score")
    with pytest.raises(ValueError):
        validate_identifier("")


@pytest.mark.parametrize("name", ["main", "_private", "Guild_2"])
def test_validate_table_name_accepts(name):
    assert validate_table_name(name) == name


@pytest.mark.parametrize("name", ["", "1abc", "main; DROP TABLE x", "a-b", "tbl name"])
def test_validate_table_name_rejects(name):
    with pytest.raises(ConfigurationError, match="Invalid table name"):
        validate_table_name(name)
