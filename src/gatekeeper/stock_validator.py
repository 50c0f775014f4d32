"""
StockValidator — gate перед commit

Авторитетная повторная проверка остатков на границе commit:
1. Свежее (fresh=True, без кэша) чтение каждого уникального продукта корзины
2. Доступный остаток пересчитывается правилом категории по свежему снапшоту
3. Каждая строка сравнивается с пересчитанным остатком
4. Любая нехватка блокирует commit ЦЕЛИКОМ (частичного commit нет)

Проверки на этапе добавления в корзину заведомо устаревшие: остаток могли
израсходовать другие продавцы между сборкой корзины и checkout.

Отсутствующий в каталоге или неактивный продукт считается нехваткой
с available = 0.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.conversion.converter import UnitConverter
from src.core.domain.cart import Cart
from src.core.domain.product import Product
from src.core.errors import StockError, StockShortfall
from src.core.math.numerical_safeguards import exceeds

if TYPE_CHECKING:
    from src.checkout.ports import ProductCatalog

logger = logging.getLogger("pos.stock")


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class StockValidationResult:
    """Результат проверки остатков."""

    commit_allowed: bool
    block_reason: str

    shortfalls: tuple[StockShortfall, ...] = ()

    # Свежие снапшоты продуктов (product_id → Product)
    fresh_products: dict[str, Product] = field(default_factory=dict)

    details: str = ""

    def raise_for_shortfalls(self) -> None:
        """
        Raises:
            StockError: если commit заблокирован
        """
        if not self.commit_allowed:
            raise StockError(self.shortfalls)


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class StockValidatorConfig:
    """Конфигурация StockValidator."""

    # Допуск сравнения requested vs available (canonical unit)
    quantity_tolerance: float = 1e-9

    # Считать неактивный продукт нехваткой
    block_inactive_products: bool = True


# =============================================================================
# VALIDATOR
# =============================================================================


class StockValidator:
    """
    Фаза 1 двухфазного протокола validate-then-commit.

    Не изменяет ни корзину, ни каталог.
    """

    def __init__(
        self,
        catalog: "ProductCatalog",
        converter: UnitConverter | None = None,
        config: StockValidatorConfig | None = None,
    ):
        self.catalog = catalog
        self.converter = converter or UnitConverter()
        self.config = config or StockValidatorConfig()

    def validate(self, cart: Cart) -> StockValidationResult:
        """
        Проверка всех строк корзины против свежих остатков.

        Returns:
            StockValidationResult с постатейным отчётом о нехватке
        """
        if cart.is_empty:
            return StockValidationResult(
                commit_allowed=False,
                block_reason="empty_cart",
                details="Cart has no lines",
            )

        product_ids = list(dict.fromkeys(cart.product_ids))
        fresh = {p.product_id: p for p in self.catalog.fetch(product_ids, fresh=True)}

        shortfalls: list[StockShortfall] = []
        for line in cart.lines:
            product = fresh.get(line.product_id)

            if product is None:
                shortfalls.append(self._shortfall(line.product, line.resolved_quantity, 0.0, "product_not_found"))
                continue
            if self.config.block_inactive_products and not product.is_active:
                shortfalls.append(self._shortfall(product, line.resolved_quantity, 0.0, "product_inactive"))
                continue

            available = self.converter.available_stock(product)
            if exceeds(line.resolved_quantity, available, self.config.quantity_tolerance):
                shortfalls.append(self._shortfall(product, line.resolved_quantity, available))

        if shortfalls:
            details = "; ".join(s.describe() for s in shortfalls)
            logger.warning("Commit blocked by stock validation: %s", details)
            return StockValidationResult(
                commit_allowed=False,
                block_reason="insufficient_stock",
                shortfalls=tuple(shortfalls),
                fresh_products=fresh,
                details=details,
            )

        logger.info("Stock validation passed for %d line(s)", len(cart.lines))
        return StockValidationResult(
            commit_allowed=True,
            block_reason="",
            fresh_products=fresh,
            details=f"{len(cart.lines)} line(s) within available stock",
        )

    def require_valid(self, cart: Cart) -> StockValidationResult:
        """
        validate() + исключение при нехватке.

        Raises:
            StockError: одна или несколько строк превышают свежий остаток
        """
        result = self.validate(cart)
        result.raise_for_shortfalls()
        return result

    @staticmethod
    def _shortfall(
        product: Product,
        requested: float,
        available: float,
        reason: str = "insufficient_stock",
    ) -> StockShortfall:
        return StockShortfall(
            product_id=product.product_id,
            product_name=product.name,
            requested=requested,
            available=available,
            unit=product.canonical_unit,
            reason=reason,
        )
