"""Gatekeeper — проверка корзины перед commit.

StockValidator: свежее чтение остатков, блокировка всего commit при нехватке.
"""

from .stock_validator import StockValidationResult, StockValidator, StockValidatorConfig

__all__ = [
    "StockValidator",
    "StockValidatorConfig",
    "StockValidationResult",
]
