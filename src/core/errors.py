"""
Checkout Errors — таксономия ошибок ядра кассы

Три класса отказов, каждый указывает конкретную строку/поле:
- ValidationError: некорректный ввод количества/единицы (локально исправимо)
- StockError: одна или несколько строк превышают доступный остаток
- CommitError: сбой внешнего commit (сеть, авторизация, отказ сервера)

Ни одна ошибка не изменяет и не очищает корзину.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CheckoutError(Exception):
    """Базовое исключение ядра кассы."""


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(CheckoutError):
    """
    Некорректный или запрещённый ввод количества/единицы.

    Attributes:
        field: Имя поля ввода (например, 'entered_quantity')
        line: Идентификатор продукта строки (None если строка ещё не создана)
    """

    def __init__(self, message: str, *, field: str | None = None, line: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.line = line


class ConversionConfigError(ValidationError):
    """У продукта не задан коэффициент, необходимый для выбранной единицы."""


class CheckoutStateError(CheckoutError):
    """Операция недопустима в текущем состоянии checkout."""

    def __init__(self, message: str, *, state: str, operation: str):
        super().__init__(message)
        self.state = state
        self.operation = operation


# =============================================================================
# STOCK
# =============================================================================


@dataclass(frozen=True)
class StockShortfall:
    """Нехватка по одной строке: запрошено vs доступно (canonical unit)."""

    product_id: str
    product_name: str
    requested: float
    available: float
    unit: str
    reason: str = "insufficient_stock"

    @property
    def missing(self) -> float:
        return max(0.0, self.requested - self.available)

    def describe(self) -> str:
        return (
            f"{self.product_name}: requested {self.requested:g} {self.unit}, "
            f"available {self.available:g} {self.unit}"
        )


class StockError(CheckoutError):
    """Одна или несколько строк превышают доступный остаток."""

    def __init__(self, shortfalls: list[StockShortfall] | tuple[StockShortfall, ...]):
        self.shortfalls: tuple[StockShortfall, ...] = tuple(shortfalls)
        lines = "; ".join(s.describe() for s in self.shortfalls)
        super().__init__(f"Insufficient stock: {lines}")

    @property
    def product_ids(self) -> tuple[str, ...]:
        return tuple(s.product_id for s in self.shortfalls)


# =============================================================================
# COMMIT
# =============================================================================


class CommitFailureKind(str, Enum):
    """Классификация отказа внешнего commit."""

    NETWORK = "NETWORK"
    AUTH = "AUTH"
    REMOTE_REJECTED = "REMOTE_REJECTED"
    INVALID_QUANTITY = "INVALID_QUANTITY"
    STOCK = "STOCK"
    SERVER = "SERVER"
    UNKNOWN = "UNKNOWN"


class CommitError(CheckoutError):
    """
    Сбой внешнего commit. Корзина не изменяется, повтор — ответственность вызывающего.

    Attributes:
        kind: Классификация отказа
        error_code: Код ошибки от committer (если есть)
        raw_result: Сырой ответ committer или исходное исключение
    """

    def __init__(
        self,
        message: str,
        *,
        kind: CommitFailureKind,
        error_code: str | None = None,
        raw_result: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.error_code = error_code
        self.raw_result = raw_result


class CommitOutcomeUnknown(CommitError):
    """
    Commit был отправлен, но окончательный ответ не получен (timeout).

    Нельзя считать это отказом: продажа могла быть записана.
    """

    def __init__(self, message: str, *, raw_result: Any = None):
        super().__init__(
            message,
            kind=CommitFailureKind.UNKNOWN,
            error_code="OUTCOME_UNKNOWN",
            raw_result=raw_result,
        )
