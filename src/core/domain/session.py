"""
SessionConfig — конфигурация checkout-сессии

Immutable Pydantic модель: курс, валюта отображения и ставка налога читаются
один раз в начале checkout и не перечитываются до его окончания. Все расчёты
сессии (подытог, скидка, налог) используют один и тот же экземпляр.
"""

from collections.abc import Mapping
from typing import Any, Final

from pydantic import BaseModel, Field

from .currency import Currency

# Значения по умолчанию из настроек компании
DEFAULT_USD_HTG_RATE: Final[float] = 132.0
DEFAULT_DISPLAY_CURRENCY: Final[Currency] = Currency.HTG
DEFAULT_TAX_RATE_PCT: Final[float] = 10.0


class SessionConfig(BaseModel):
    """
    Конфигурация сессии checkout.

    exchange_rate — HTG за 1 USD.
    tax_rate — процент (10.0 = 10%), применяется к сумме после скидки.
    """

    exchange_rate: float = Field(
        DEFAULT_USD_HTG_RATE, gt=0, allow_inf_nan=False, description="Курс USD→HTG"
    )
    display_currency: Currency = Field(
        DEFAULT_DISPLAY_CURRENCY, description="Валюта отображения итогов"
    )
    tax_rate: float = Field(
        DEFAULT_TAX_RATE_PCT, ge=0, le=100, allow_inf_nan=False, description="Ставка налога (%)"
    )

    model_config = {"frozen": True}

    @classmethod
    def from_company_settings(cls, settings: Mapping[str, Any]) -> "SessionConfig":
        """
        Построение из строки настроек компании.

        Ожидаемые ключи: usd_htg_rate, default_display_currency, tva_rate.
        Отсутствующие или пустые значения заменяются значениями по умолчанию.
        """
        rate = settings.get("usd_htg_rate")
        currency = settings.get("default_display_currency")
        tax_rate = settings.get("tva_rate")

        return cls(
            exchange_rate=float(rate) if rate else DEFAULT_USD_HTG_RATE,
            display_currency=Currency(currency) if currency else DEFAULT_DISPLAY_CURRENCY,
            tax_rate=float(tax_rate) if tax_rate is not None else DEFAULT_TAX_RATE_PCT,
        )
