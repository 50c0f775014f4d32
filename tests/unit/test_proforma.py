"""
Тесты для pro-forma.

Покрытие:
- Нумерация PF-YYYYMMDD-NNN с дневным сбросом
- Срок действия
- Итоги совпадают с PricingEngine
- Пустая корзина отклоняется
"""

from datetime import date

import pytest

from src.checkout import ProformaConfig, ProformaNumberSequence, build_proforma
from src.core.domain import Cart, CartLine, Currency, DiscountKind, DiscountSpec, Product, SessionConfig
from src.core.errors import ValidationError
from src.pricing import PricingEngine


def make_cart() -> Cart:
    product = Product(
        product_id="htg-item",
        name="Item",
        category="materiaux",
        canonical_unit="unit",
        base_price=500.0,
        currency=Currency.HTG,
        current_stock=10,
    )
    line = CartLine(
        product=product,
        entered_quantity=2,
        entered_unit="unit",
        resolved_quantity=2,
        unit_price=500.0,
    )
    return Cart(lines=(line,), discount=DiscountSpec(kind=DiscountKind.PERCENTAGE, value=10))


ISSUED_ON = date(2025, 3, 14)


class TestProformaNumberSequence:
    """Тесты нумерации."""

    def test_format(self):
        assert ProformaNumberSequence().next_number(ISSUED_ON) == "PF-20250314-001"

    def test_increments_within_day(self):
        sequence = ProformaNumberSequence()
        sequence.next_number(ISSUED_ON)
        assert sequence.next_number(ISSUED_ON) == "PF-20250314-002"

    def test_resets_per_day(self):
        sequence = ProformaNumberSequence()
        sequence.next_number(ISSUED_ON)
        assert sequence.next_number(date(2025, 3, 15)) == "PF-20250315-001"

    def test_continues_from_issued(self):
        sequence = ProformaNumberSequence(issued={ISSUED_ON: 41})
        assert sequence.next_number(ISSUED_ON) == "PF-20250314-042"


class TestBuildProforma:
    """Тесты построения pro-forma."""

    def test_totals_match_engine(self):
        engine = PricingEngine(SessionConfig())
        quote = build_proforma(make_cart(), engine, ProformaNumberSequence(), ISSUED_ON)

        assert quote.number == "PF-20250314-001"
        assert quote.unified_subtotal == pytest.approx(1000.0)
        assert quote.discount_amount == pytest.approx(100.0)
        assert quote.tax_amount == pytest.approx(90.0)
        assert quote.final_total == pytest.approx(990.0)
        assert len(quote.lines) == 1

    def test_validity(self):
        quote = build_proforma(make_cart(), PricingEngine(SessionConfig()), ProformaNumberSequence(), ISSUED_ON)

        assert quote.valid_until == date(2025, 3, 21)
        assert quote.is_valid_on(date(2025, 3, 21))
        assert not quote.is_valid_on(date(2025, 3, 22))

    def test_custom_validity(self):
        sequence = ProformaNumberSequence(ProformaConfig(validity_days=30))
        quote = build_proforma(make_cart(), PricingEngine(SessionConfig()), sequence, ISSUED_ON)
        assert quote.valid_until == date(2025, 4, 13)

    def test_empty_cart_rejected(self):
        with pytest.raises(ValidationError, match="empty cart"):
            build_proforma(Cart(), PricingEngine(SessionConfig()), ProformaNumberSequence(), ISSUED_ON)
