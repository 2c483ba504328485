"""
Config -> Kernel bridges.

Functions that convert a StockConfig into kernel-compatible inputs.  They
live in stock_config (the producer) because the kernel must NEVER import
stock_config.

Usage:
    from stock_config import get_active_config
    from stock_config.bridges import engine_kwargs, to_stock_defaults

    config = get_active_config()
    init_engine_from_url(config.database.url, **engine_kwargs(config))
    defaults = to_stock_defaults(config)
"""

from __future__ import annotations

import logging
from typing import Any

from stock_config.schema import StockConfig
from stock_kernel.domain.policy import StockDefaults


def engine_kwargs(config: StockConfig) -> dict[str, Any]:
    """Keyword arguments for ``stock_kernel.db.engine.init_engine_from_url``."""
    db = config.database
    return {
        "echo": db.echo,
        "pool_size": db.pool_size,
        "max_overflow": db.max_overflow,
        "pool_timeout": db.pool_timeout,
        "pool_recycle": db.pool_recycle,
    }


def log_level(config: StockConfig) -> int:
    """Numeric level for ``stock_kernel.logging_config.configure_logging``."""
    return logging.getLevelName(config.logging.level)


def to_stock_defaults(config: StockConfig) -> StockDefaults:
    """Build the kernel's StockDefaults from the inventory, order and catalog sections."""
    return StockDefaults(
        default_country=config.inventory.default_country,
        default_tax_rate=config.inventory.default_tax_rate,
        allow_negative_stock=config.inventory.allow_negative_stock,
        low_stock_threshold=config.inventory.low_stock_threshold,
        order_number_prefix=config.orders.prefix,
        order_number_width=config.orders.width,
        sku_code_prefix=config.catalog.sku_code_prefix,
    )
