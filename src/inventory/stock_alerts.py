"""
Stock Alerts — сигналы низкого остатка

CRITICAL: остаток 0 или ≤ порога
WARNING:  остаток ≤ порог * warning_multiplier (1.5)

Остаток и порог сравниваются в единице учёта каталога (коробки, барры, единицы).
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from src.core.domain.product import Product


class AlertSeverity(str, Enum):
    """Уровень сигнала."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


@dataclass(frozen=True)
class StockAlertConfig:
    """Конфигурация сигналов низкого остатка."""

    warning_multiplier: float = 1.5
    include_inactive: bool = False


@dataclass(frozen=True)
class StockAlert:
    product_id: str
    product_name: str
    category: str
    current_stock: float
    threshold: float
    severity: AlertSeverity


def evaluate_stock_alert(product: Product, config: StockAlertConfig | None = None) -> StockAlert | None:
    config = config or StockAlertConfig()
    stock = product.current_stock
    threshold = product.alert_threshold

    if stock <= 0 or stock <= threshold:
        severity = AlertSeverity.CRITICAL
    elif stock <= threshold * config.warning_multiplier:
        severity = AlertSeverity.WARNING
    else:
        return None

    return StockAlert(
        product_id=product.product_id,
        product_name=product.name,
        category=product.category,
        current_stock=stock,
        threshold=threshold,
        severity=severity,
    )


def stock_alert_report(products: Iterable[Product], config: StockAlertConfig | None = None) -> list[StockAlert]:
    """
    Сигналы по списку продуктов: сначала CRITICAL, внутри уровня — по возрастанию остатка.
    """
    config = config or StockAlertConfig()
    alerts = []
    for product in products:
        if not product.is_active and not config.include_inactive:
            continue
        alert = evaluate_stock_alert(product, config)
        if alert is not None:
            alerts.append(alert)

    severity_order = {AlertSeverity.CRITICAL: 0, AlertSeverity.WARNING: 1}
    return sorted(alerts, key=lambda a: (severity_order[a.severity], a.current_stock, a.product_name))
