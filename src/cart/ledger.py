"""
CartLedger — владелец строк корзины

Единственная точка мутации корзины: добавление, слияние, прямая правка,
шаг +/-, удаление. Каждая мутация строит новый Cart (immutable), итоги
вычисляются из строк и поэтому не могут разойтись с ними.

ПРАВИЛА:
1. Повторное добавление продукта увеличивает resolved_quantity существующей
   строки (с повторной проверкой остатка), КРОМЕ AREA: площадь нельзя
   досуммировать, строку нужно удалить и ввести общую площадь заново.
2. Прямая правка заменяет resolved_quantity целиком.
3. Шаг +/- запрещён для AREA; уменьшение до нуля удаляет строку.
4. Удаление удаляет строку, обнуления строк не бывает.
5. Любой отказ оставляет корзину без изменений.

Проверки остатка здесь — по снапшоту каталога (browsing). Авторитетная
проверка выполняется только StockValidator на commit.
"""

import logging

from pydantic import ValidationError as PydanticValidationError

from src.conversion.converter import UnitConverter
from src.conversion.rules import ConversionResult, EntryUnit
from src.core.domain.cart import Cart, CartLine, CustomerInfo, DiscountKind, DiscountSpec
from src.core.domain.currency import Currency
from src.core.domain.product import Product
from src.core.errors import ValidationError
from src.core.math.numerical_safeguards import EPS_QTY, is_whole_number

logger = logging.getLogger("pos.cart")


class CartLedger:
    """
    Корзина одной кассовой сессии (один владелец, без конкурентных писателей).
    """

    def __init__(self, converter: UnitConverter | None = None, cart: Cart | None = None):
        self.converter = converter or UnitConverter()
        self._cart = cart if cart is not None else Cart()

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return self._cart.lines

    @property
    def is_empty(self) -> bool:
        return self._cart.is_empty

    @property
    def total(self) -> float:
        return self._cart.total

    # -------------------------------------------------------------------------
    # Line mutations
    # -------------------------------------------------------------------------

    def add(self, product: Product, quantity: float, unit: EntryUnit | None = None) -> CartLine:
        """
        Добавление продукта или слияние с существующей строкой.

        Returns:
            Новая (или объединённая) строка

        Raises:
            ValidationError: некорректный ввод, неактивный продукт, повторный ввод площади
            StockError: количество (с учётом строки в корзине) превышает остаток
        """
        if not product.is_active:
            raise ValidationError(
                f"{product.name} is not available for sale",
                field="product_id",
                line=product.product_id,
            )

        result = self.converter.convert(product, quantity, unit)
        existing = self._cart.find_line(product.product_id)

        if existing is None:
            self.converter.check_stock(product, result.resolved_quantity)
            line = _line_from_result(product, result)
            logger.debug(
                "Added %s: %s %s -> %s %s",
                product.product_id, result.entered_quantity, result.entered_unit,
                result.resolved_quantity, result.canonical_unit,
            )
        else:
            if not self.converter.rule_for(product).supports_increment:
                raise ValidationError(
                    f"{product.name} is already in the cart; remove it and re-enter the total area",
                    field="entered_quantity",
                    line=product.product_id,
                )
            merged = existing.resolved_quantity + result.resolved_quantity
            self.converter.check_stock(product, merged)
            line = _line_with_quantity(product, merged, result.unit_price)
            logger.debug("Merged %s: %s -> %s", product.product_id, existing.resolved_quantity, merged)

        self._cart = self._cart.with_line(line)
        return line

    def set_quantity(self, product_id: str, quantity: float, product: Product | None = None) -> CartLine:
        """
        Прямая правка: resolved_quantity заменяется целиком.

        Args:
            product_id: Продукт строки
            quantity: Новое количество в canonical unit
            product: Обновлённый снапшот продукта (по умолчанию снапшот строки)

        Raises:
            ValidationError: строки нет или количество некорректно
            StockError: количество превышает остаток
        """
        existing = self._require_line(product_id)
        product = product or existing.product

        rule = self.converter.rule_for(product)
        resolved = rule.validate_resolved(product, quantity)
        self.converter.check_stock(product, resolved)

        line = _line_with_quantity(product, resolved, rule.unit_price(product))
        self._cart = self._cart.with_line(line)
        logger.debug("Edited %s: %s -> %s", product_id, existing.resolved_quantity, resolved)
        return line

    def adjust_quantity(self, product_id: str, step: int) -> CartLine | None:
        """
        Шаг +/- для штучных строк.

        Returns:
            Обновлённая строка или None, если строка удалена (результат <= 0)

        Raises:
            ValidationError: строки нет, шаг не целый/нулевой, строка AREA
            StockError: увеличение превышает остаток
        """
        existing = self._require_line(product_id)
        product = existing.product
        rule = self.converter.rule_for(product)

        if not rule.supports_increment:
            raise ValidationError(
                f"{product.name} is sold by area; edit the total area instead",
                field="entered_quantity",
                line=product_id,
            )
        if step == 0 or not is_whole_number(step):
            raise ValidationError(
                f"Step for {product.name} must be a non-zero whole number, got {step!r}",
                field="entered_quantity",
                line=product_id,
            )

        new_quantity = existing.resolved_quantity + step
        if new_quantity <= EPS_QTY:
            self.remove(product_id)
            return None

        resolved = rule.validate_resolved(product, new_quantity)
        if step > 0:
            self.converter.check_stock(product, resolved)

        line = _line_with_quantity(product, resolved, existing.unit_price)
        self._cart = self._cart.with_line(line)
        return line

    def remove(self, product_id: str) -> CartLine:
        """Удаление строки целиком."""
        existing = self._require_line(product_id)
        self._cart = self._cart.without_line(product_id)
        logger.debug("Removed %s", product_id)
        return existing

    def clear(self) -> None:
        """Полная очистка корзины (успешный commit или явный reset)."""
        self._cart = Cart()

    # -------------------------------------------------------------------------
    # Cart metadata
    # -------------------------------------------------------------------------

    def set_discount(
        self,
        kind: DiscountKind,
        value: float = 0.0,
        currency: Currency | None = None,
    ) -> DiscountSpec:
        try:
            discount = DiscountSpec(kind=kind, value=value, currency=currency)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid discount: {e.errors()[0]['msg']}", field="discount") from e
        self._cart = self._cart.model_copy(update={"discount": discount})
        return discount

    def set_customer(self, name: str | None = None, address: str | None = None) -> CustomerInfo:
        customer = CustomerInfo(name=name or None, address=address or None)
        self._cart = self._cart.model_copy(update={"customer": customer})
        return customer

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def remaining_stock(self, product: Product) -> float:
        """Остаток для отображения: доступно минус уже в корзине (canonical unit)."""
        available = self.converter.available_stock(product)
        existing = self._cart.find_line(product.product_id)
        in_cart = existing.resolved_quantity if existing is not None else 0.0
        return max(0.0, available - in_cart)

    def _require_line(self, product_id: str) -> CartLine:
        existing = self._cart.find_line(product_id)
        if existing is None:
            raise ValidationError(f"Product {product_id} is not in the cart", field="product_id", line=product_id)
        return existing


# =============================================================================
# HELPERS
# =============================================================================


def _line_from_result(product: Product, result: ConversionResult) -> CartLine:
    return _build_line(
        product=product,
        entered_quantity=result.entered_quantity,
        entered_unit=result.entered_unit,
        resolved_quantity=result.resolved_quantity,
        unit_price=result.unit_price,
        source_unit=result.source_unit,
        source_value=result.source_value,
    )


def _line_with_quantity(product: Product, quantity: float, unit_price: float) -> CartLine:
    # Provenance сбрасывается: исходный ввод больше не описывает строку
    return _build_line(
        product=product,
        entered_quantity=quantity,
        entered_unit=product.canonical_unit,
        resolved_quantity=quantity,
        unit_price=unit_price,
    )


def _build_line(product: Product, **fields) -> CartLine:
    try:
        return CartLine(product=product, **fields)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid cart line for {product.name}: {e.errors()[0]['msg']}",
            field="entered_quantity",
            line=product.product_id,
        ) from e
