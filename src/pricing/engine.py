"""
PricingEngine — итоги корзины в двух валютах

Все итоги выводятся из текущего состояния строк корзины, ничего не кэшируется.

ФОРМУЛЫ:
    bucket[c] = Σ line_total для строк в валюте c (ровно две корзины: USD, HTG)
    unified_subtotal = bucket[display] + convert(bucket[other] → display)
    discount:
        PERCENTAGE: unified_subtotal * clamp(value, 0, 100) / 100
        FLAT:       clamp(convert(value → display), 0, unified_subtotal)
    taxable = max(0, unified_subtotal - discount)
    tax = taxable * tax_rate / 100
    final_total = max(0, unified_subtotal - discount + tax)

Курс берётся из SessionConfig, переданного в конструктор, и одинаково
применяется к подытогу, скидке и налогу. Распределение скидки по валютам
(apportioned) — только для аудита/отображения и в итог не возвращается.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from src.core.domain.cart import Cart, CartLine, DiscountKind, DiscountSpec
from src.core.domain.currency import Currency, convert
from src.core.domain.session import SessionConfig
from src.core.math.numerical_safeguards import clamp, safe_divide

logger = logging.getLogger("pos.pricing")


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class CurrencyBuckets:
    """Подытоги по фиксированной паре валют (каждый в своей валюте)."""

    usd: float = 0.0
    htg: float = 0.0

    def amount(self, currency: Currency) -> float:
        return self.usd if currency == Currency.USD else self.htg

    @property
    def has_multiple_currencies(self) -> bool:
        return self.usd > 0 and self.htg > 0


@dataclass(frozen=True)
class DiscountBreakdown:
    """Скидка, вычисленная один раз от unified подытога."""

    kind: DiscountKind
    requested_value: float
    amount: float  # в валюте отображения, после clamp
    effective_pct: float  # amount / unified_subtotal * 100

    # Доля скидки по валютам, каждая в своей валюте (display only)
    apportioned: dict[Currency, float] = field(default_factory=dict)

    # Запрошенная скидка урезана clamp (процент > 100 или сумма > подытога)
    was_clamped: bool = False


@dataclass(frozen=True)
class PricingResult:
    """Полный расчёт корзины в валюте отображения."""

    display_currency: Currency
    exchange_rate: float
    tax_rate: float

    buckets: CurrencyBuckets
    unified_subtotal: float
    discount: DiscountBreakdown
    taxable_amount: float
    tax_amount: float
    final_total: float

    # Оценка прибыли (только строки с известной закупочной ценой)
    profit_estimate: float

    @property
    def discount_amount(self) -> float:
        return self.discount.amount


# =============================================================================
# ENGINE
# =============================================================================


class PricingEngine:
    """
    Расчёт итогов корзины для одной checkout-сессии.

    Движок привязан к одному SessionConfig: для нового курса создаётся
    новый движок (новая сессия).
    """

    def __init__(self, config: SessionConfig):
        self.config = config

    # -------------------------------------------------------------------------
    # Currency
    # -------------------------------------------------------------------------

    def to_display(self, amount: float, currency: Currency) -> float:
        return convert(amount, currency, self.config.display_currency, self.config.exchange_rate)

    def from_display(self, amount: float, currency: Currency) -> float:
        return convert(amount, self.config.display_currency, currency, self.config.exchange_rate)

    # -------------------------------------------------------------------------
    # Subtotals
    # -------------------------------------------------------------------------

    def bucket_subtotals(self, lines: Iterable[CartLine]) -> CurrencyBuckets:
        usd = 0.0
        htg = 0.0
        for line in lines:
            if line.currency == Currency.USD:
                usd += line.line_total
            else:
                htg += line.line_total
        return CurrencyBuckets(usd=usd, htg=htg)

    def unified_subtotal(self, buckets: CurrencyBuckets) -> float:
        return sum(self.to_display(buckets.amount(c), c) for c in Currency)

    # -------------------------------------------------------------------------
    # Discount
    # -------------------------------------------------------------------------

    def compute_discount(
        self,
        spec: DiscountSpec,
        unified_subtotal: float,
        buckets: CurrencyBuckets,
    ) -> DiscountBreakdown:
        """
        Скидка от unified подытога.

        PERCENTAGE clamp в [0, 100], FLAT clamp в [0, unified_subtotal].
        """
        if spec.kind == DiscountKind.PERCENTAGE:
            pct = clamp(spec.value, 0.0, 100.0)
            amount = unified_subtotal * pct / 100.0
            clamped = pct != spec.value
        elif spec.kind == DiscountKind.FLAT:
            flat_currency = spec.currency or self.config.display_currency
            flat_display = self.to_display(spec.value, flat_currency)
            amount = clamp(flat_display, 0.0, max(unified_subtotal, 0.0))
            clamped = amount != flat_display
        else:
            amount = 0.0
            clamped = False

        effective_pct = safe_divide(amount, unified_subtotal) * 100.0

        return DiscountBreakdown(
            kind=spec.kind,
            requested_value=spec.value,
            amount=amount,
            effective_pct=effective_pct,
            apportioned=self._apportion(amount, unified_subtotal, buckets),
            was_clamped=clamped,
        )

    def _apportion(
        self,
        amount: float,
        unified_subtotal: float,
        buckets: CurrencyBuckets,
    ) -> dict[Currency, float]:
        """Пропорциональное распределение скидки по валютам (display only)."""
        apportioned: dict[Currency, float] = {}
        for currency in Currency:
            share = safe_divide(self.to_display(buckets.amount(currency), currency), unified_subtotal)
            apportioned[currency] = self.from_display(amount * share, currency)
        return apportioned

    # -------------------------------------------------------------------------
    # Profit
    # -------------------------------------------------------------------------

    def estimate_profit(self, lines: Iterable[CartLine], discount_pct: float = 0.0) -> float:
        """
        Прибыль в валюте отображения, уменьшенная пропорционально скидке.

        Строки без закупочной цены в оценку не входят.
        """
        unified = 0.0
        for line in lines:
            purchase_price = line.product.purchase_price
            if purchase_price is None:
                continue
            margin = (line.unit_price - purchase_price) * line.resolved_quantity
            unified += self.to_display(margin, line.currency)
        return unified * (1.0 - clamp(discount_pct, 0.0, 100.0) / 100.0)

    # -------------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------------

    def price(self, cart: Cart) -> PricingResult:
        """Полный расчёт корзины."""
        buckets = self.bucket_subtotals(cart.lines)
        unified = self.unified_subtotal(buckets)
        discount = self.compute_discount(cart.discount, unified, buckets)

        taxable = max(0.0, unified - discount.amount)
        tax = taxable * self.config.tax_rate / 100.0
        final_total = max(0.0, unified - discount.amount + tax)

        logger.debug(
            "Priced cart: lines=%d subtotal=%.2f discount=%.2f tax=%.2f total=%.2f %s",
            len(cart.lines), unified, discount.amount, tax, final_total,
            self.config.display_currency.value,
        )

        return PricingResult(
            display_currency=self.config.display_currency,
            exchange_rate=self.config.exchange_rate,
            tax_rate=self.config.tax_rate,
            buckets=buckets,
            unified_subtotal=unified,
            discount=discount,
            taxable_amount=taxable,
            tax_amount=tax,
            final_total=final_total,
            profit_estimate=self.estimate_profit(cart.lines, discount.effective_pct),
        )
