"""
Pro-forma — ценовое предложение без списания остатков

Pro-forma строится из текущей корзины тем же PricingEngine, что и продажа,
но не проходит StockValidator и не отправляется в TransactionCommitter.

Номер: PF-YYYYMMDD-NNN, NNN — порядковый номер за день (с 001).
"""

import threading
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Final

from pydantic import BaseModel, Field

from src.core.domain.cart import Cart, CartLine, CustomerInfo, DiscountSpec
from src.core.domain.currency import Currency
from src.core.errors import ValidationError
from src.pricing.engine import PricingEngine

PROFORMA_PREFIX: Final[str] = "PF"


# =============================================================================
# CONFIG
# =============================================================================


@dataclass(frozen=True)
class ProformaConfig:
    """Конфигурация pro-forma."""

    validity_days: int = 7
    prefix: str = PROFORMA_PREFIX
    sequence_width: int = 3


# =============================================================================
# NUMBERING
# =============================================================================


class ProformaNumberSequence:
    """Счётчик номеров pro-forma, сбрасывается каждый день."""

    def __init__(self, config: ProformaConfig | None = None, issued: dict[date, int] | None = None):
        """
        Args:
            config: конфигурация (префикс, ширина номера)
            issued: уже выданное количество номеров по датам
        """
        self.config = config or ProformaConfig()
        self._issued: dict[date, int] = dict(issued or {})
        self._lock = threading.Lock()

    def next_number(self, issued_on: date) -> str:
        with self._lock:
            count = self._issued.get(issued_on, 0) + 1
            self._issued[issued_on] = count
        return f"{self.config.prefix}-{issued_on:%Y%m%d}-{count:0{self.config.sequence_width}d}"


# =============================================================================
# QUOTE
# =============================================================================


class ProformaQuote(BaseModel):
    """Pro-forma: зафиксированные строки и итоги на дату выдачи."""

    number: str = Field(..., min_length=1, description="Номер PF-YYYYMMDD-NNN")
    issued_on: date = Field(..., description="Дата выдачи")
    valid_until: date = Field(..., description="Последний день действия")

    lines: tuple[CartLine, ...] = Field(..., min_length=1, description="Строки")
    discount: DiscountSpec = Field(..., description="Скидка")
    customer: CustomerInfo = Field(..., description="Клиент")

    display_currency: Currency
    exchange_rate: float = Field(..., gt=0)
    tax_rate: float = Field(..., ge=0, le=100)
    unified_subtotal: float = Field(..., ge=0)
    discount_amount: float = Field(..., ge=0)
    tax_amount: float = Field(..., ge=0)
    final_total: float = Field(..., ge=0)

    model_config = {"frozen": True}

    def is_valid_on(self, day: date) -> bool:
        return self.issued_on <= day <= self.valid_until


def build_proforma(
    cart: Cart,
    engine: PricingEngine,
    sequence: ProformaNumberSequence,
    issued_on: date | None = None,
    config: ProformaConfig | None = None,
) -> ProformaQuote:
    """
    Pro-forma из текущей корзины.

    Raises:
        ValidationError: корзина пуста
    """
    if cart.is_empty:
        raise ValidationError("Cannot issue a pro-forma for an empty cart", field="lines")

    config = config or sequence.config
    issued_on = issued_on or date.today()
    pricing = engine.price(cart)

    return ProformaQuote(
        number=sequence.next_number(issued_on),
        issued_on=issued_on,
        valid_until=issued_on + timedelta(days=config.validity_days),
        lines=cart.lines,
        discount=cart.discount,
        customer=cart.customer,
        display_currency=pricing.display_currency,
        exchange_rate=pricing.exchange_rate,
        tax_rate=pricing.tax_rate,
        unified_subtotal=pricing.unified_subtotal,
        discount_amount=pricing.discount.amount,
        tax_amount=pricing.tax_amount,
        final_total=pricing.final_total,
    )
