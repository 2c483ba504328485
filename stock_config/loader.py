"""
YAML loader for stock configuration.

Reads a YAML document, applies environment overrides and parses the
result into the frozen dataclasses of ``stock_config.schema``.

Environment overrides (applied after the file is read):
    STOCK_DATABASE_URL  -> database.url
    STOCK_LOG_LEVEL     -> logging.level
    STOCK_CONFIG_PATH   -> which file to read (see ``resolve_config_path``)
"""

from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping

import yaml

from stock_config.schema import (
    CatalogDefaults,
    DatabaseConfig,
    InventoryDefaults,
    LoggingConfig,
    OrderNumbering,
    StockConfig,
)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

ENV_CONFIG_PATH = "STOCK_CONFIG_PATH"
ENV_DATABASE_URL = "STOCK_DATABASE_URL"
ENV_LOG_LEVEL = "STOCK_LOG_LEVEL"

_SECTIONS = ("database", "logging", "inventory", "orders", "catalog")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a Decimal from YAML (string, int or float)."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"{name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{name}: expected a number, got {value!r}") from exc


def _section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name}: expected a mapping")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse a DatabaseConfig from a dict."""
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=str(data.get("url", defaults.url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
        pool_recycle=int(data.get("pool_recycle", defaults.pool_recycle)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    """Parse a LoggingConfig from a dict."""
    return LoggingConfig(level=str(data.get("level", "INFO")).upper())


def parse_inventory(data: dict[str, Any]) -> InventoryDefaults:
    """Parse InventoryDefaults from a dict."""
    defaults = InventoryDefaults()
    return InventoryDefaults(
        default_country=str(data.get("default_country", defaults.default_country)),
        default_tax_rate=parse_decimal(
            data.get("default_tax_rate", defaults.default_tax_rate),
            "inventory.default_tax_rate",
        ),
        allow_negative_stock=bool(
            data.get("allow_negative_stock", defaults.allow_negative_stock)
        ),
        low_stock_threshold=parse_decimal(
            data.get("low_stock_threshold", defaults.low_stock_threshold),
            "inventory.low_stock_threshold",
        ),
    )


def parse_orders(data: dict[str, Any]) -> OrderNumbering:
    """Parse OrderNumbering from a dict."""
    return OrderNumbering(
        prefix=str(data.get("prefix", "ORD")).upper(),
        width=int(data.get("width", 4)),
    )


def parse_catalog(data: dict[str, Any]) -> CatalogDefaults:
    """Parse CatalogDefaults from a dict."""
    return CatalogDefaults(
        sku_code_prefix=str(data.get("sku_code_prefix", "PROD")).upper(),
    )


def apply_env_overrides(
    data: dict[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Return a copy of ``data`` with environment overrides applied."""
    merged = {name: dict(_section(data, name)) for name in _SECTIONS}
    if environ.get(ENV_DATABASE_URL):
        merged["database"]["url"] = environ[ENV_DATABASE_URL]
    if environ.get(ENV_LOG_LEVEL):
        merged["logging"]["level"] = environ[ENV_LOG_LEVEL]
    return merged


def parse_config(data: dict[str, Any], source: str | None = None) -> StockConfig:
    """
    Parse a complete StockConfig from a dict.

    Unknown top-level sections are rejected so typos do not silently fall
    back to defaults.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}")
    return StockConfig(
        database=parse_database(_section(data, "database")),
        logging=parse_logging(_section(data, "logging")),
        inventory=parse_inventory(_section(data, "inventory")),
        orders=parse_orders(_section(data, "orders")),
        catalog=parse_catalog(_section(data, "catalog")),
        source=source,
    )


def resolve_config_path(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Explicit path, then STOCK_CONFIG_PATH, then the packaged defaults."""
    if path is not None:
        return Path(path)
    environ = os.environ if environ is None else environ
    if environ.get(ENV_CONFIG_PATH):
        return Path(environ[ENV_CONFIG_PATH])
    return DEFAULT_CONFIG_PATH


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> StockConfig:
    """Read, override and parse a configuration file."""
    environ = os.environ if environ is None else environ
    config_path = resolve_config_path(path, environ)
    data = apply_env_overrides(load_yaml_file(config_path), environ)
    return parse_config(data, source=str(config_path))
