from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_VISIBLE_STATUSES,
    CatalogConfig,
    CatalogTables,
    ImportConfig,
)

"""Config loader.

Responsibilities:
- Load the YAML config (default config/import.yml)
- Validate it against config_schema.json (shipped next to this module)
- Apply defaults for every optional key
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: the schema file is missing or invalid, or the config
            data violates it (wrong types, unknown keys, ...)
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> ImportConfig:
    """Build an ImportConfig from already validated data."""
    cat_raw = data.get("catalog") or {}
    tables_raw = cat_raw.get("tables") or {}
    tables = CatalogTables(**tables_raw)
    catalog = CatalogConfig(
        fixture=cat_raw.get("fixture"),
        host=cat_raw.get("host"),
        port=cat_raw.get("port"),
        user=cat_raw.get("user"),
        password=cat_raw.get("password"),
        database=cat_raw.get("database"),
        dsn=cat_raw.get("dsn"),
        tables=tables,
    )
    return ImportConfig(
        delimiter=data.get("delimiter", ","),
        separator=data.get("separator", ","),
        relationship_field=(data.get("relationship_field") or "").strip(),
        visible_statuses=tuple(data.get("visible_statuses", DEFAULT_VISIBLE_STATUSES)),
        trace=bool(data.get("trace", False)),
        error_log_dir=data.get("error_log_dir", "./logs"),
        catalog=catalog,
    )


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)
    return config_from_dict(data)
