"""
Cart — модели корзины кассы

Immutable Pydantic модели. Любая мутация корзины (добавление, правка,
удаление строки) создаёт новый экземпляр Cart, поэтому неудачный commit
физически не может изменить корзину.

ИНВАРИАНТЫ:
1. line_total == unit_price * resolved_quantity (вычисляемое поле, не хранится)
2. cart.total == Σ line.line_total (вычисляемое поле, не кэшируется)
3. Не более одной строки на продукт
"""

from enum import Enum

from pydantic import BaseModel, Field, computed_field, field_validator, model_validator

from .currency import Currency
from .product import Product, StockCategory


# =============================================================================
# ENUMS
# =============================================================================


class DiscountKind(str, Enum):
    """Тип скидки на корзину"""

    NONE = "none"
    PERCENTAGE = "percentage"
    FLAT = "flat"


class PaymentMethod(str, Enum):
    """Способ оплаты"""

    CASH = "cash"
    CHEQUE = "cheque"
    TRANSFER = "transfer"


# =============================================================================
# NESTED MODELS
# =============================================================================


class DiscountSpec(BaseModel):
    """
    Спецификация скидки.

    value — процент для PERCENTAGE, сумма для FLAT. Clamp выполняется
    в PricingEngine, здесь хранится ввод продавца как есть.
    currency — валюта суммы FLAT (None = валюта отображения сессии).
    """

    kind: DiscountKind = Field(DiscountKind.NONE, description="Тип скидки")
    value: float = Field(0.0, ge=0, allow_inf_nan=False, description="Значение скидки")
    currency: Currency | None = Field(None, description="Валюта FLAT скидки")

    model_config = {"frozen": True}

    @field_validator("value")
    @classmethod
    def drop_value_for_none(cls, v: float, info) -> float:
        """Для NONE значение не имеет смысла и обнуляется."""
        if info.data.get("kind") == DiscountKind.NONE:
            return 0.0
        return v


class CustomerInfo(BaseModel):
    """Данные клиента (только для отображения, на цену не влияют)."""

    name: str | None = Field(None, description="Имя клиента")
    address: str | None = Field(None, description="Адрес клиента")

    model_config = {"frozen": True}


# =============================================================================
# CART LINE
# =============================================================================


class CartLine(BaseModel):
    """
    Строка корзины.

    resolved_quantity всегда выражено в canonical unit продукта
    (m² для AREA, барры для BULK_COUNT, единицы иначе).
    source_unit/source_value — исходный ввод продавца (например, 0.25 тонны),
    только для отображения.
    """

    product: Product = Field(..., description="Снапшот продукта на момент ввода")

    entered_quantity: float = Field(..., gt=0, allow_inf_nan=False, description="Введённое количество")
    entered_unit: str = Field(..., min_length=1, description="Единица ввода")
    resolved_quantity: float = Field(
        ..., gt=0, allow_inf_nan=False, description="Количество в canonical unit"
    )
    unit_price: float = Field(..., gt=0, allow_inf_nan=False, description="Цена за canonical unit")

    # Provenance (display only)
    source_unit: str | None = Field(None, description="Исходная единица ввода")
    source_value: float | None = Field(None, description="Исходное значение ввода")

    model_config = {"frozen": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def line_total(self) -> float:
        return self.unit_price * self.resolved_quantity

    @property
    def product_id(self) -> str:
        return self.product.product_id

    @property
    def currency(self) -> Currency:
        return self.product.currency

    @property
    def canonical_unit(self) -> str:
        return self.product.canonical_unit

    @property
    def stock_category(self) -> StockCategory:
        return self.product.stock_category


# =============================================================================
# CART
# =============================================================================


class Cart(BaseModel):
    """
    Корзина: упорядоченные строки + скидка + клиент.

    total — сумма номиналов строк без учёта валют. Денежные итоги в валюте
    отображения считает PricingEngine.
    """

    lines: tuple[CartLine, ...] = Field(default=(), description="Строки в порядке добавления")
    discount: DiscountSpec = Field(default_factory=DiscountSpec, description="Скидка")
    customer: CustomerInfo = Field(default_factory=CustomerInfo, description="Клиент")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_unique_products(self) -> "Cart":
        seen: set[str] = set()
        for line in self.lines:
            if line.product_id in seen:
                raise ValueError(f"Duplicate cart line for product {line.product_id}")
            seen.add(line.product_id)
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return sum((line.line_total for line in self.lines), 0.0)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def product_ids(self) -> tuple[str, ...]:
        return tuple(line.product_id for line in self.lines)

    def find_line(self, product_id: str) -> CartLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def with_line(self, line: CartLine) -> "Cart":
        """Новая корзина: строка заменена на месте или добавлена в конец."""
        if self.find_line(line.product_id) is None:
            return self.model_copy(update={"lines": self.lines + (line,)})
        lines = tuple(line if existing.product_id == line.product_id else existing for existing in self.lines)
        return self.model_copy(update={"lines": lines})

    def without_line(self, product_id: str) -> "Cart":
        lines = tuple(existing for existing in self.lines if existing.product_id != product_id)
        return self.model_copy(update={"lines": lines})
