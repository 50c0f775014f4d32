"""
Category Rules — правила конверсии количества по категориям

Каждое правило (tagged variant по StockCategory) владеет:
- допустимыми единицами ввода
- конверсией ввода продавца в canonical resolved_quantity
- валидацией количества
- формулой цены за canonical unit
- вычислением доступного остатка в canonical unit

ВАРИАНТЫ:
    AREA:       resolved = entered_area (m², без округления)
                available = round2(stock_boxes * area_per_box)
    BULK_COUNT: resolved = bars (целое) или round(weight * bars_per_unit)
                available = stock_bars
    GENERIC:    resolved = count (целое)
                available = current_stock
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from src.core.domain.product import Product, StockCategory
from src.core.errors import ConversionConfigError, ValidationError
from src.core.math.numerical_safeguards import (
    is_valid_float,
    is_whole_number,
    round_half_away_from_zero,
    round_to_whole,
)


# =============================================================================
# ENUMS
# =============================================================================


class EntryUnit(str, Enum):
    """Единица, в которой продавец вводит количество"""

    SQUARE_METER = "m²"
    BAR = "barre"
    TONNE = "tonne"
    UNIT = "unit"


# =============================================================================
# RESULT
# =============================================================================


@dataclass(frozen=True)
class ConversionResult:
    """Результат конверсии ввода продавца."""

    entered_quantity: float
    entered_unit: str
    resolved_quantity: float  # canonical unit
    canonical_unit: str
    unit_price: float  # за canonical unit

    # Provenance (display only)
    source_unit: str | None = None
    source_value: float | None = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.resolved_quantity


# =============================================================================
# BASE RULE
# =============================================================================


class CategoryRule(ABC):
    """Базовое правило категории."""

    category: ClassVar[StockCategory]
    allowed_units: ClassVar[frozenset[EntryUnit]]
    default_unit: ClassVar[EntryUnit]

    # Разрешено ли увеличивать существующую строку повторным вводом / шагом +/-
    supports_increment: ClassVar[bool] = True

    def convert(self, product: Product, quantity: float, unit: EntryUnit | None = None) -> ConversionResult:
        """
        Конверсия ввода продавца в canonical количество.

        Raises:
            ValidationError: некорректное количество или единица
            ConversionConfigError: у продукта нет нужного коэффициента
        """
        entry_unit = unit or self.default_unit
        if entry_unit not in self.allowed_units:
            allowed = ", ".join(sorted(u.value for u in self.allowed_units))
            raise ValidationError(
                f"Unit '{entry_unit.value}' is not allowed for {product.name} (allowed: {allowed})",
                field="entered_unit",
                line=product.product_id,
            )
        _require_positive(product, quantity)
        return self._convert(product, quantity, entry_unit)

    @abstractmethod
    def _convert(self, product: Product, quantity: float, unit: EntryUnit) -> ConversionResult:
        ...

    @abstractmethod
    def validate_resolved(self, product: Product, quantity: float) -> float:
        """Валидация прямой правки resolved_quantity (canonical unit)."""

    @abstractmethod
    def available_stock(self, product: Product) -> float:
        """Доступный остаток в canonical unit."""

    def stock_debit(self, product: Product, quantity: float) -> float:
        """Списание в единице учёта каталога для resolved_quantity."""
        return quantity

    def unit_price(self, product: Product) -> float:
        return product.base_price

    def _result(
        self,
        product: Product,
        entered_quantity: float,
        entered_unit: str,
        resolved_quantity: float,
        source_unit: str | None = None,
        source_value: float | None = None,
    ) -> ConversionResult:
        return ConversionResult(
            entered_quantity=entered_quantity,
            entered_unit=entered_unit,
            resolved_quantity=resolved_quantity,
            canonical_unit=product.canonical_unit,
            unit_price=self.unit_price(product),
            source_unit=source_unit,
            source_value=source_value,
        )


# =============================================================================
# AREA
# =============================================================================


class AreaRule(CategoryRule):
    """
    Товар по площади (керамическая плитка).

    Продавец вводит нужную площадь. Количество НЕ округляется до целой
    коробки: resolved_quantity == введённая площадь, цена считается от
    неокруглённой площади. Округление до 2 знаков применяется только к
    доступному остатку (коробки * m²/коробка).
    """

    category = StockCategory.AREA
    allowed_units = frozenset({EntryUnit.SQUARE_METER})
    default_unit = EntryUnit.SQUARE_METER
    supports_increment = False

    def _convert(self, product: Product, quantity: float, unit: EntryUnit) -> ConversionResult:
        self._require_debit(product, quantity)
        return self._result(product, quantity, unit.value, quantity)

    def validate_resolved(self, product: Product, quantity: float) -> float:
        _require_positive(product, quantity)
        self._require_debit(product, quantity)
        return quantity

    def _require_debit(self, product: Product, quantity: float) -> None:
        """Площадь, списание которой округляется до 0.00 коробки, не продаётся."""
        if self.stock_debit(product, quantity) <= 0:
            raise ValidationError(
                f"{quantity:g} m² of {product.name} is less than 0.01 box "
                f"({self.area_per_box(product):g} m² per box)",
                field="entered_quantity",
                line=product.product_id,
            )

    def available_stock(self, product: Product) -> float:
        return round_half_away_from_zero(product.current_stock * self.area_per_box(product), 2)

    def stock_debit(self, product: Product, quantity: float) -> float:
        # Остаток коробок хранится с 2 знаками
        return round_half_away_from_zero(quantity / self.area_per_box(product), 2)

    def area_per_box(self, product: Product) -> float:
        area_per_box = product.conversion.area_per_box
        if area_per_box is None:
            raise ConversionConfigError(
                f"Area per box is not defined for {product.name}",
                field="area_per_box",
                line=product.product_id,
            )
        return area_per_box


# =============================================================================
# BULK COUNT
# =============================================================================


class BulkCountRule(CategoryRule):
    """
    Товар целыми штуками с вводом весом (арматура: барры / тонны).

    Барры неделимы: ввод барр должен быть целым, ввод тонн округляется до
    ближайшей целой барры (остаток поглощается).
    """

    category = StockCategory.BULK_COUNT
    allowed_units = frozenset({EntryUnit.BAR, EntryUnit.TONNE})
    default_unit = EntryUnit.BAR

    def _convert(self, product: Product, quantity: float, unit: EntryUnit) -> ConversionResult:
        if unit == EntryUnit.TONNE:
            bars_per_unit = self.bars_per_unit(product)
            bars = round_to_whole(quantity * bars_per_unit)
            if bars < 1:
                raise ValidationError(
                    f"{quantity:g} {unit.value} of {product.name} is less than one bar "
                    f"({bars_per_unit:g} bars per {unit.value})",
                    field="entered_quantity",
                    line=product.product_id,
                )
            return self._result(
                product, quantity, unit.value, bars, source_unit=unit.value, source_value=quantity
            )

        bars = _require_whole(product, quantity)
        return self._result(
            product, quantity, unit.value, bars, source_unit=unit.value, source_value=bars
        )

    def validate_resolved(self, product: Product, quantity: float) -> float:
        _require_positive(product, quantity)
        return _require_whole(product, quantity)

    def available_stock(self, product: Product) -> float:
        return product.current_stock

    def bars_per_unit(self, product: Product) -> float:
        bars_per_unit = product.conversion.bars_per_unit
        if bars_per_unit is None:
            raise ConversionConfigError(
                f"Bars per tonne is not defined for {product.name}; weight entry is unavailable",
                field="bars_per_unit",
                line=product.product_id,
            )
        return bars_per_unit


# =============================================================================
# GENERIC
# =============================================================================


class GenericRule(CategoryRule):
    """Все остальные категории: целое количество единиц продукта."""

    category = StockCategory.GENERIC
    allowed_units = frozenset({EntryUnit.UNIT})
    default_unit = EntryUnit.UNIT

    def _convert(self, product: Product, quantity: float, unit: EntryUnit) -> ConversionResult:
        count = _require_whole(product, quantity)
        return self._result(product, quantity, product.canonical_unit, count)

    def validate_resolved(self, product: Product, quantity: float) -> float:
        _require_positive(product, quantity)
        return _require_whole(product, quantity)

    def available_stock(self, product: Product) -> float:
        return product.current_stock


# =============================================================================
# REGISTRY
# =============================================================================


DEFAULT_RULES: dict[StockCategory, CategoryRule] = {
    StockCategory.AREA: AreaRule(),
    StockCategory.BULK_COUNT: BulkCountRule(),
    StockCategory.GENERIC: GenericRule(),
}


# =============================================================================
# HELPERS
# =============================================================================


def _require_positive(product: Product, quantity: float) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
        raise ValidationError(
            f"Quantity for {product.name} must be a number, got {quantity!r}",
            field="entered_quantity",
            line=product.product_id,
        )
    if not is_valid_float(quantity):
        raise ValidationError(
            f"Quantity for {product.name} must be finite, got {quantity}",
            field="entered_quantity",
            line=product.product_id,
        )
    if quantity <= 0:
        raise ValidationError(
            f"Quantity for {product.name} must be greater than zero, got {quantity:g}",
            field="entered_quantity",
            line=product.product_id,
        )


def _require_whole(product: Product, quantity: float) -> int:
    if not is_whole_number(quantity):
        raise ValidationError(
            f"Quantity for {product.name} must be a whole number of "
            f"{product.canonical_unit}, got {quantity:g}",
            field="entered_quantity",
            line=product.product_id,
        )
    return int(round(quantity))
