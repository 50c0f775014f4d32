"""
Product — снапшот продукта из каталога

Immutable Pydantic модель. Ядро кассы никогда не изменяет продукт: остатки
меняет только внешний TransactionCommitter.

current_stock хранится в единице учёта каталога:
- AREA: количество коробок (площадь = коробки * area_per_box)
- BULK_COUNT: количество целых барр
- GENERIC: количество единиц продукта
"""

from enum import Enum

from pydantic import BaseModel, Field, field_validator

from .currency import Currency


# =============================================================================
# ENUMS
# =============================================================================


class StockCategory(str, Enum):
    """
    Правило конверсии количества, определяемое категорией продукта.

    AREA — товар продаётся по площади, учитывается в коробках (керамика)
    BULK_COUNT — товар учитывается целыми штуками, может вводиться весом (арматура)
    GENERIC — все остальные категории
    """

    AREA = "area"
    BULK_COUNT = "bulk_count"
    GENERIC = "generic"


# Теги категорий каталога, для которых действует специальное правило.
# Всё, чего нет в таблице, считается GENERIC.
CATEGORY_TAG_RULES: dict[str, StockCategory] = {
    "ceramique": StockCategory.AREA,
    "fer": StockCategory.BULK_COUNT,
}


def stock_category_for(category_tag: str) -> StockCategory:
    """Правило конверсии для тега категории каталога."""
    return CATEGORY_TAG_RULES.get(category_tag.strip().lower(), StockCategory.GENERIC)


# =============================================================================
# NESTED MODELS
# =============================================================================


class ConversionFactors(BaseModel):
    """Коэффициенты конверсии, специфичные для категории."""

    area_per_box: float | None = Field(
        None, gt=0, description="Площадь одной коробки (m²/коробка)"
    )
    bars_per_unit: float | None = Field(
        None, gt=0, description="Количество барр в единице веса (барр/тонна)"
    )

    model_config = {"frozen": True}


# =============================================================================
# PRODUCT MODEL
# =============================================================================


class Product(BaseModel):
    """
    Продукт каталога (read-only для ядра).

    base_price интерпретируется по правилу категории:
    цена за m² для AREA, цена за барру для BULK_COUNT, цена за единицу иначе.
    """

    # Идентификация
    product_id: str = Field(..., min_length=1, description="Идентификатор продукта")
    name: str = Field(..., min_length=1, description="Наименование")
    category: str = Field(..., min_length=1, description="Тег категории каталога")
    canonical_unit: str = Field(..., min_length=1, description="Единица учёта в корзине")

    # Цена
    base_price: float = Field(..., gt=0, description="Цена за canonical unit")
    currency: Currency = Field(..., description="Валюта цены")
    purchase_price: float | None = Field(
        None, ge=0, description="Закупочная цена за canonical unit (для прибыли)"
    )

    # Остатки
    current_stock: float = Field(..., ge=0, description="Остаток в единице учёта каталога")
    alert_threshold: float = Field(0, ge=0, description="Порог низкого остатка")
    conversion: ConversionFactors = Field(
        default_factory=ConversionFactors, description="Коэффициенты конверсии"
    )

    is_active: bool = Field(True, description="Доступен для продажи")

    model_config = {"frozen": True}

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str) -> str:
        """Теги категорий сравниваются без учёта регистра."""
        return v.strip().lower()

    @property
    def stock_category(self) -> StockCategory:
        return stock_category_for(self.category)
