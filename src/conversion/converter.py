"""
UnitConverter — единственная точка конверсии ввода продавца

ЗАПРЕЩЕНО вычислять resolved_quantity, цену строки или доступный остаток
в обход этого модуля: ветвление по категориям живёт только в правилах
(src.conversion.rules).
"""

import logging
from collections.abc import Mapping

from src.core.domain.product import Product, StockCategory
from src.core.errors import StockError, StockShortfall
from src.core.math.numerical_safeguards import exceeds

from .rules import DEFAULT_RULES, CategoryRule, ConversionResult, EntryUnit

logger = logging.getLogger("pos.conversion")


class UnitConverter:
    """
    Фасад над правилами категорий.

    Конверсия синхронная и без side-effects.
    """

    def __init__(self, rules: Mapping[StockCategory, CategoryRule] | None = None):
        """
        Args:
            rules: правила по категориям (по умолчанию DEFAULT_RULES)
        """
        self._rules: dict[StockCategory, CategoryRule] = dict(rules or DEFAULT_RULES)
        missing = set(StockCategory) - set(self._rules)
        if missing:
            raise ValueError(f"No conversion rule for categories: {sorted(c.value for c in missing)}")

    def rule_for(self, product: Product) -> CategoryRule:
        return self._rules[product.stock_category]

    def convert(self, product: Product, quantity: float, unit: EntryUnit | None = None) -> ConversionResult:
        """Конверсия без проверки остатка."""
        return self.rule_for(product).convert(product, quantity, unit)

    def available_stock(self, product: Product) -> float:
        """Доступный остаток в canonical unit."""
        return self.rule_for(product).available_stock(product)

    def stock_debit(self, product: Product, quantity: float) -> float:
        """Списание в единице учёта каталога (коробки для AREA)."""
        return self.rule_for(product).stock_debit(product, quantity)

    def check_stock(self, product: Product, requested: float) -> None:
        """
        Проверка запрошенного количества против доступного остатка.

        Raises:
            StockError: с точной нехваткой (requested vs available)
        """
        available = self.available_stock(product)
        if exceeds(requested, available):
            logger.warning(
                "Stock check failed for %s: requested=%s available=%s",
                product.product_id, requested, available,
            )
            raise StockError([
                StockShortfall(
                    product_id=product.product_id,
                    product_name=product.name,
                    requested=requested,
                    available=available,
                    unit=product.canonical_unit,
                )
            ])

    def resolve(
        self,
        product: Product,
        quantity: float,
        unit: EntryUnit | None = None,
    ) -> ConversionResult:
        """
        Конверсия ввода + проверка против доступного остатка.

        Raises:
            ValidationError: некорректный ввод
            StockError: превышение остатка
        """
        result = self.convert(product, quantity, unit)
        self.check_stock(product, result.resolved_quantity)
        return result
