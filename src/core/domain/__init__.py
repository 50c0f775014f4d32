"""
Domain models and value objects.

Contains fundamental checkout entities: Product, CartLine, Cart, SessionConfig.
"""

from src.core.domain.cart import (
    Cart,
    CartLine,
    CustomerInfo,
    DiscountKind,
    DiscountSpec,
    PaymentMethod,
)
from src.core.domain.currency import Currency, convert
from src.core.domain.product import (
    CATEGORY_TAG_RULES,
    ConversionFactors,
    Product,
    StockCategory,
    stock_category_for,
)
from src.core.domain.session import (
    DEFAULT_DISPLAY_CURRENCY,
    DEFAULT_TAX_RATE_PCT,
    DEFAULT_USD_HTG_RATE,
    SessionConfig,
)

__all__ = [
    # Currency
    "Currency",
    "convert",
    # Product
    "Product",
    "ConversionFactors",
    "StockCategory",
    "CATEGORY_TAG_RULES",
    "stock_category_for",
    # Cart
    "Cart",
    "CartLine",
    "CustomerInfo",
    "DiscountKind",
    "DiscountSpec",
    "PaymentMethod",
    # Session
    "SessionConfig",
    "DEFAULT_USD_HTG_RATE",
    "DEFAULT_DISPLAY_CURRENCY",
    "DEFAULT_TAX_RATE_PCT",
]
