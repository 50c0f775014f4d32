"""
Inventory — сигналы низкого остатка.
"""

from .stock_alerts import (
    AlertSeverity,
    StockAlert,
    StockAlertConfig,
    evaluate_stock_alert,
    stock_alert_report,
)

__all__ = [
    "AlertSeverity",
    "StockAlert",
    "StockAlertConfig",
    "evaluate_stock_alert",
    "stock_alert_report",
]
