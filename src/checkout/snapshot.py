"""
Cart Snapshot — полезная нагрузка для TransactionCommitter

Снапшот строится из корзины и PricingResult одной сессии (один курс на
подытог, скидку и налог) и соответствует contracts/schema/cart_snapshot.json.

Количество штучных строк (барры, единицы) передаётся целым числом:
хранилище остатков не принимает дробные значения для этих категорий.
"""

from typing import Any, Final

from src.core.domain.cart import Cart, CartLine, PaymentMethod
from src.core.domain.product import StockCategory
from src.pricing.engine import PricingResult

SNAPSHOT_SCHEMA_VERSION: Final[str] = "1"


def snapshot_quantity(line: CartLine) -> float | int:
    if line.stock_category == StockCategory.AREA:
        return line.resolved_quantity
    return int(round(line.resolved_quantity))


def line_snapshot(line: CartLine) -> dict[str, Any]:
    return {
        "product_id": line.product_id,
        "resolved_quantity": snapshot_quantity(line),
        "canonical_unit": line.canonical_unit,
        "currency": line.currency.value,
        "unit_price": line.unit_price,
        "line_total": line.line_total,
        "source_unit": line.source_unit,
        "source_value": line.source_value,
    }


def build_cart_snapshot(
    cart: Cart,
    pricing: PricingResult,
    payment_method: PaymentMethod = PaymentMethod.CASH,
) -> dict[str, Any]:
    """
    Снапшот корзины для commit.

    Args:
        cart: Корзина (не пустая)
        pricing: Расчёт этой корзины движком сессии
        payment_method: Способ оплаты

    Returns:
        dict по схеме cart_snapshot
    """
    return {
        "schema_version": SNAPSHOT_SCHEMA_VERSION,
        "lines": [line_snapshot(line) for line in cart.lines],
        "discount": {
            "kind": cart.discount.kind.value,
            "value": cart.discount.value,
            "currency": cart.discount.currency.value if cart.discount.currency else None,
            "amount": pricing.discount.amount,
        },
        "tax_rate": pricing.tax_rate,
        "exchange_rate": pricing.exchange_rate,
        "display_currency": pricing.display_currency.value,
        "payment_method": payment_method.value,
        "customer": {
            "name": cart.customer.name,
            "address": cart.customer.address,
        },
        "totals": {
            "subtotal_usd": pricing.buckets.usd,
            "subtotal_htg": pricing.buckets.htg,
            "unified_subtotal": pricing.unified_subtotal,
            "tax_amount": pricing.tax_amount,
            "final_total": pricing.final_total,
        },
    }
