"""
Currency — фиксированная пара валют кассы

Магазин работает ровно с двумя валютами (USD и HTG). Произвольная
мультивалютность не поддерживается: курс задаётся одним числом
usd_htg_rate (HTG за 1 USD).

ЗАПРЕЩЕНО конвертировать суммы в обход convert() этого модуля.
"""

from enum import Enum

from src.core.math.numerical_safeguards import validate_positive


class Currency(str, Enum):
    """Валюта цены продукта / отображения итогов"""

    USD = "USD"
    HTG = "HTG"

    @property
    def other(self) -> "Currency":
        """Вторая валюта пары."""
        return Currency.HTG if self is Currency.USD else Currency.USD


def convert(amount: float, from_currency: Currency, to_currency: Currency, usd_htg_rate: float) -> float:
    """
    Конверсия суммы внутри пары USD/HTG.

    USD → HTG: amount * rate
    HTG → USD: amount / rate

    Args:
        amount: Сумма в from_currency
        from_currency: Исходная валюта
        to_currency: Целевая валюта
        usd_htg_rate: Курс (HTG за 1 USD), > 0

    Returns:
        Сумма в to_currency

    Raises:
        ValueError: Если курс не положительный
    """
    validate_positive(usd_htg_rate, "usd_htg_rate")

    if from_currency == to_currency:
        return amount

    if from_currency == Currency.USD:
        return amount * usd_htg_rate
    return amount / usd_htg_rate
