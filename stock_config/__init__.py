"""
stock_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or environment variables directly.

Architecture position:
    Configuration.  Sits above ``stock_kernel`` and below
    ``stock_services``.  The kernel MUST NEVER import from
    ``stock_config``; ``bridges`` translates a StockConfig into kernel
    inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configured file does not exist.
    - ``ValueError`` -- schema validation failures.
    - ``yaml.YAMLError`` -- malformed YAML.
"""

from __future__ import annotations

import logging
from pathlib import Path

from stock_config.loader import load_config
from stock_config.schema import (
    CatalogDefaults,
    DatabaseConfig,
    InventoryDefaults,
    LoggingConfig,
    OrderNumbering,
    StockConfig,
)

_logger = logging.getLogger("stock_kernel.config")

_active: StockConfig | None = None


def get_active_config(path: Path | None = None, reload: bool = False) -> StockConfig:
    """
    The ONLY public configuration entrypoint.

    The first call loads and caches the configuration; later calls return
    the cached value unless ``reload`` is True or a ``path`` is given.
    Every load emits a ``STOCK_CONFIG_TRACE`` log entry.
    """
    global _active

    if _active is not None and path is None and not reload:
        return _active

    config = load_config(path)
    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "source": config.source,
            "dialect": config.database.url.split(":", 1)[0],
            "log_level": config.logging.level,
            "order_prefix": config.orders.prefix,
        },
    )
    _active = config
    return config


def reset_active_config() -> None:
    """Drop the cached configuration.  Used by tests."""
    global _active
    _active = None


__all__ = [
    "CatalogDefaults",
    "DatabaseConfig",
    "InventoryDefaults",
    "LoggingConfig",
    "OrderNumbering",
    "StockConfig",
    "get_active_config",
    "reset_active_config",
]
