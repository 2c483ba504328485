"""
Runtime defaults consumed by kernel services.

The kernel never reads configuration files itself; ``stock_config.bridges``
builds a ``StockDefaults`` from the active configuration and hands it to
the services.  Constructing one with no arguments gives the built-in
defaults used by tests.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class StockDefaults:
    """
    Defaults applied when a request leaves a policy field unset.

    Guarantees:
        - default_tax_rate is in [0, 1].
        - order_number_width >= 1.
        - low_stock_threshold >= 0.
    """

    default_country: str = "Greece"
    default_tax_rate: Decimal = Decimal("0.24")
    allow_negative_stock: bool = False
    low_stock_threshold: Decimal = Decimal("10")
    order_number_prefix: str = "ORD"
    order_number_width: int = 4
    sku_code_prefix: str = "PROD"

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.default_tax_rate <= Decimal("1"):
            raise ValueError("default_tax_rate must be between 0 and 1")
        if self.order_number_width < 1:
            raise ValueError("order_number_width must be >= 1")
        if self.low_stock_threshold < 0:
            raise ValueError("low_stock_threshold must be >= 0")
        if not self.order_number_prefix or not self.sku_code_prefix:
            raise ValueError("code prefixes must be non-empty")
