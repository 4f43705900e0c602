"""Default resolution: only on a confirmed miss, never for global keys, never cached."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tablestore import StoreOptions, VariableRegistry, connect
from tablestore.defaults import DefaultResolver


def _schema(default=5, declared=True):
    schema = MagicMock()
    schema.has.return_value = declared
    schema.get.return_value = {"default": default}
    return schema


@pytest.fixture
def options(tmp_path: Path) -> StoreOptions:
    return StoreOptions(location=str(tmp_path / "d.sqlite"), tables=["main"])


def test_hit_does_not_consult_schema(options):
    schema = _schema()
    with connect(options, schema=schema) as db:
        db.set("main", "score", "u", 1)
        assert db.get("main", "score", "u").value == 1
    schema.has.assert_not_called()
    schema.get.assert_not_called()


def test_miss_consults_schema_with_base_and_table(options):
    schema = _schema(default=7)
    with connect(options, schema=schema) as db:
        assert db.get("main", "score", "u").value == 7
    schema.has.assert_called_once_with("score", "main")
    schema.get.assert_called_once_with("score", "main")


def test_undeclared_miss_returns_none(options):
    schema = _schema(declared=False)
    with connect(options, schema=schema) as db:
        assert db.get("main", "score", "u").value is None
    schema.get.assert_not_called()


def test_global_key_miss_never_consults_schema(options):
    schema = _schema()
    with connect(options, schema=schema) as db:
        for base in ("cooldown", "setTimeout", "ticketChannel"):
            assert db.get("main", base, "x").value is None
    schema.has.assert_not_called()


def test_every_miss_requeries_schema(options):
    schema = _schema(default=1)
    with connect(options, schema=schema) as db:
        assert db.get("main", "score", "u").value == 1
        schema.get.return_value = {"default": 2}
        assert db.get("main", "score", "u").value == 2
    assert schema.has.call_count == 2


def test_declaration_object_with_default_attribute():
    class Declaration:
        default = [1, 2]

    schema = MagicMock()
    schema.has.return_value = True
    schema.get.return_value = Declaration()
    assert DefaultResolver(schema).resolve("main", "list") == [1, 2]


def test_resolver_without_schema():
    assert DefaultResolver().resolve("main", "anything") is None


def test_returned_default_is_a_copy():
    registry = VariableRegistry().add("inventory", {"items": []}, "main")
    resolver = DefaultResolver(registry)
    first = resolver.resolve("main", "inventory")
    first["items"].append("sword")
    assert resolver.resolve("main", "inventory") == {"items": []}


def test_registry_table_specific_overrides_wildcard():
    registry = VariableRegistry().add("money", 0).add("money", 100, "bank")
    assert registry.get("money", "bank")["default"] == 100
    assert registry.get("money", "main")["default"] == 0
    assert registry.remove("money", "bank")
    assert registry.get("money", "bank")["default"] == 0
    assert not registry.remove("money", "bank")


def test_registry_from_mapping():
    registry = VariableRegistry.from_mapping({"main": {"score": 0}, "*": {"lang": "en"}})
    assert len(registry) == 2
    assert registry.has("score", "main")
    assert not registry.has("score", "other")
    assert registry.has("lang", "other")
    with pytest.raises(TypeError):
        VariableRegistry.from_mapping({"main": ["score"]})


def test_variables_from_options_build_registry(tmp_path: Path):
    options = StoreOptions(location=str(tmp_path / "v.sqlite"), tables=["main"], variables={"main": {"score": 10}})
    with connect(options) as db:
        assert db.get("main", "score", "u").value == 10
