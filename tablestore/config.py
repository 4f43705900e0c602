"""
Load store options from tablestore.yaml with optional env overrides.
Merge order: defaults <- YAML <- env <- explicit overrides.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .core.errors import ConfigurationError
from .keys import validate_table_name

# Managed by the store for auxiliary bookkeeping; callers may not configure it.
RESERVED_TABLE = "__tablestore_vars__"

CONFIG_FILENAME = "tablestore.yaml"

# Defaults if no YAML or env
_DEFAULTS: Dict[str, Any] = {
    "location": None,
    "tables": [],
    "debug": False,
    "logging": True,
    "busy_timeout_ms": 5000,
    "maintenance_interval_s": 3600.0,
    "variables": {},
}

_TRUE = {"1", "true", "yes", "on"}


@dataclass
class StoreOptions:
    """Startup options. validate() raises ConfigurationError; nothing is opened here."""

    location: Optional[str] = None
    tables: List[str] = field(default_factory=list)
    debug: bool = False
    logging: bool = True
    busy_timeout_ms: int = 5000
    maintenance_interval_s: float = 3600.0
    variables: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def validate(self) -> "StoreOptions":
        if not self.location:
            raise ConfigurationError("Missing database location, please provide a location for the database.")
        if not isinstance(self.tables, (list, tuple)) or not all(isinstance(t, str) for t in self.tables):
            raise ConfigurationError(f"tables must be a list of names, got {self.tables!r}")
        if not self.tables:
            raise ConfigurationError("Missing tables, please provide at least one table.")
        if RESERVED_TABLE in self.tables:
            raise ConfigurationError(f"'{RESERVED_TABLE}' is reserved as a table name.")
        for name in self.tables:
            validate_table_name(name)
        if len(set(self.tables)) != len(self.tables):
            raise ConfigurationError(f"Duplicate table names in {self.tables!r}")
        try:
            busy_timeout_ms = int(self.busy_timeout_ms)
            interval_s = float(self.maintenance_interval_s)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid option value: {e}") from e
        if busy_timeout_ms < 0:
            raise ConfigurationError("busy_timeout_ms must be >= 0")
        if interval_s <= 0:
            raise ConfigurationError("maintenance_interval_s must be > 0")
        return self

    @property
    def all_tables(self) -> List[str]:
        """Configured tables plus the reserved table, in creation order."""
        return [*self.tables, RESERVED_TABLE]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "StoreOptions":
        unknown = set(data) - set(_DEFAULTS)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(sorted(unknown))}")
        tables = data.get("tables") or []
        if isinstance(tables, str):
            tables = [t.strip() for t in tables.split(",") if t.strip()]
        if not isinstance(tables, (list, tuple)):
            raise ConfigurationError("tables must be a list of names")
        location = data.get("location")
        variables = data.get("variables") or {}
        if not isinstance(variables, Mapping):
            raise ConfigurationError("variables must be a mapping of table -> {name: default}")
        try:
            return cls(
                location=str(location) if location is not None else None,
                tables=[str(t) for t in tables],
                debug=_as_bool(data.get("debug", False)),
                logging=_as_bool(data.get("logging", True)),
                busy_timeout_ms=int(data.get("busy_timeout_ms", 5000)),
                maintenance_interval_s=float(data.get("maintenance_interval_s", 3600.0)),
                variables={str(k): dict(v or {}) for k, v in variables.items()},
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid option value: {e}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE
    return bool(value)


def _load_yaml(path: Optional[Union[str, Path]]) -> dict:
    if path is None:
        path = Path.cwd() / CONFIG_FILENAME
        if not path.exists():
            return {}
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping at top level")
    return data


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    location = os.environ.get("TABLESTORE_LOCATION")
    if location:
        overrides["location"] = location
    tables = os.environ.get("TABLESTORE_TABLES")
    if tables:
        overrides["tables"] = [t.strip() for t in tables.split(",") if t.strip()]
    debug = os.environ.get("TABLESTORE_DEBUG")
    if debug:
        overrides["debug"] = debug.strip().lower() in _TRUE
    busy = os.environ.get("TABLESTORE_BUSY_TIMEOUT_MS")
    if busy:
        overrides["busy_timeout_ms"] = busy
    return overrides


def get_config(path: Optional[Union[str, Path]] = None, overrides: Optional[Mapping[str, Any]] = None) -> dict:
    """Return merged config: defaults <- YAML <- env <- overrides."""
    merged = _deep_merge(_DEFAULTS, _load_yaml(path))
    merged = _deep_merge(merged, _env_overrides())
    if overrides:
        merged = _deep_merge(merged, {k: v for k, v in overrides.items() if v is not None})
    return merged


def load_options(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> StoreOptions:
    """Merged config as StoreOptions. Not validated; connect() does that."""
    return StoreOptions.from_mapping(get_config(path, overrides))
