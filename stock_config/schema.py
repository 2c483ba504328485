"""
Stock configuration schema.

Frozen dataclasses describing a deployment's configuration.  YAML
documents are parsed into these types by the loader; ``bridges`` turns
them into the inputs the kernel understands.  Every dataclass validates
itself in ``__post_init__`` and raises ``ValueError`` on bad values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection settings."""

    url: str = "sqlite:///stock.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must be non-empty")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be >= 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow must be >= 0")
        if self.pool_timeout < 1:
            raise ValueError("database.pool_timeout must be >= 1")


@dataclass(frozen=True)
class LoggingConfig:
    """Root log level for the ``stock_kernel`` logger tree."""

    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {_LOG_LEVELS}, got {self.level!r}")


@dataclass(frozen=True)
class InventoryDefaults:
    """Warehouse policy defaults and stock reporting thresholds."""

    default_country: str = "Greece"
    default_tax_rate: Decimal = Decimal("0.24")
    allow_negative_stock: bool = False
    low_stock_threshold: Decimal = Decimal("10")

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.default_tax_rate <= Decimal("1"):
            raise ValueError("inventory.default_tax_rate must be between 0 and 1")
        if self.low_stock_threshold < 0:
            raise ValueError("inventory.low_stock_threshold must be >= 0")


@dataclass(frozen=True)
class OrderNumbering:
    """Order number format: ``{prefix}-{YYYYMMDD}-{NNNN}``."""

    prefix: str = "ORD"
    width: int = 4

    def __post_init__(self) -> None:
        if not self.prefix or not self.prefix.isalnum():
            raise ValueError("orders.prefix must be a non-empty alphanumeric string")
        if self.width < 1:
            raise ValueError("orders.width must be >= 1")


@dataclass(frozen=True)
class CatalogDefaults:
    """Generated SKU codes start with ``sku_code_prefix``."""

    sku_code_prefix: str = "PROD"

    def __post_init__(self) -> None:
        if not self.sku_code_prefix or not self.sku_code_prefix.isalnum():
            raise ValueError("catalog.sku_code_prefix must be a non-empty alphanumeric string")


@dataclass(frozen=True)
class StockConfig:
    """The complete, validated configuration of one deployment."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    inventory: InventoryDefaults = field(default_factory=InventoryDefaults)
    orders: OrderNumbering = field(default_factory=OrderNumbering)
    catalog: CatalogDefaults = field(default_factory=CatalogDefaults)
    source: str | None = None
