"""
Numerical Safeguards — денежная и количественная арифметика

Модуль обеспечивает численную устойчивость расчётов кассы:
- Округление half-away-from-zero (а не banker's rounding из round())
- NaN/Inf проверки для пользовательского ввода
- Epsilon-сравнения float для количеств и сумм
- Clamp и безопасное деление для скидок и пропорций

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Округление детерминировано и не зависит от двоичного представления float
2. NaN/Inf никогда не попадают в количество или цену
3. Деление на ноль никогда не происходит (возвращается fallback)
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Final

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Epsilon для количеств (m², штуки, барры)
EPS_QTY: Final[float] = 1e-9

# Epsilon для денежных сумм
EPS_MONEY: Final[float] = 1e-9

# Относительная толерантность для is_close
EPS_FLOAT_COMPARE_REL: Final[float] = 1e-9

# Абсолютная толерантность для is_close
EPS_FLOAT_COMPARE_ABS: Final[float] = 1e-9

# Количество знаков для отображения площади и остатков
DISPLAY_DECIMALS: Final[int] = 2


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_half_away_from_zero(value: float, decimals: int = DISPLAY_DECIMALS) -> float:
    """
    Округление "half away from zero" до заданного числа знаков.

    Встроенный round() использует banker's rounding и страдает от двоичного
    представления (round(2.675, 2) == 2.67). Здесь значение переводится в
    Decimal через repr, поэтому 2.675 → 2.68 и 0.5 → 1.

    Args:
        value: Исходное значение (должно быть finite)
        decimals: Количество знаков после запятой (>= 0)

    Returns:
        Округлённое значение

    Raises:
        ValueError: Если value NaN/Inf или decimals < 0

    Examples:
        >>> round_half_away_from_zero(2.675, 2)
        2.68
        >>> round_half_away_from_zero(-0.5, 0)
        -1.0
        >>> round_half_away_from_zero(10.763888, 2)
        10.76
    """
    if not is_valid_float(value):
        raise ValueError(f"Cannot round non-finite value: {value}")
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")

    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded)


def round_to_whole(value: float) -> int:
    """Округление до ближайшего целого (half away from zero)."""
    return int(round_half_away_from_zero(value, 0))


def is_whole_number(value: float, tol: float = EPS_QTY) -> bool:
    """
    Проверка, что значение является целым числом.

    Args:
        value: Проверяемое значение
        tol: Допустимое отклонение от ближайшего целого

    Returns:
        True если value finite и отличается от целого не более чем на tol
    """
    if not is_valid_float(value):
        return False
    return abs(value - round(value)) <= tol


# =============================================================================
# NaN/Inf И СРАВНЕНИЯ
# =============================================================================


def is_valid_float(value: float) -> bool:
    """Проверка, что float конечный (не NaN, не Inf)."""
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def is_close(
    a: float,
    b: float,
    rel_tol: float = EPS_FLOAT_COMPARE_REL,
    abs_tol: float = EPS_FLOAT_COMPARE_ABS,
) -> bool:
    """
    Сравнение float с учётом машинной точности.

    Алгоритм:
        abs(a - b) <= max(rel_tol * max(abs(a), abs(b)), abs_tol)
    """
    return math.isclose(a, b, rel_tol=rel_tol, abs_tol=abs_tol)


def exceeds(requested: float, available: float, tol: float = EPS_QTY) -> bool:
    """
    Строгое превышение с толерантностью.

    15.5 m² против остатка 15.50 не должно считаться нехваткой из-за
    двоичного хвоста float.
    """
    return requested - available > tol


# =============================================================================
# УТИЛИТЫ
# =============================================================================


def clamp(
    value: float,
    min_value: float | None = None,
    max_value: float | None = None,
) -> float:
    """
    Ограничение значения в заданном диапазоне.

    Examples:
        >>> clamp(150.0, 0.0, 100.0)
        100.0
        >>> clamp(-5.0, 0.0, 100.0)
        0.0
    """
    result = value

    if min_value is not None:
        result = max(result, min_value)

    if max_value is not None:
        result = min(result, max_value)

    return result


def safe_divide(
    numerator: float,
    denominator: float,
    fallback: float = 0.0,
    eps: float = EPS_MONEY,
) -> float:
    """
    Безопасное деление: при |denominator| < eps возвращается fallback.

    Используется для пропорций (распределение скидки по валютам,
    эффективный процент скидки), где пустая корзина даёт нулевой знаменатель.
    """
    if not is_valid_float(numerator) or not is_valid_float(denominator):
        return fallback
    if abs(denominator) < eps:
        return fallback
    return numerator / denominator


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_positive(value: float, name: str) -> None:
    """
    Валидация, что значение конечное и строго положительное.

    Raises:
        ValueError: Если value <= 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid number (not NaN/Inf), got {value}")

    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")


def validate_non_negative(value: float, name: str) -> None:
    """
    Валидация, что значение конечное и неотрицательное.

    Raises:
        ValueError: Если value < 0 или NaN/Inf
    """
    if not is_valid_float(value):
        raise ValueError(f"{name} must be a valid number (not NaN/Inf), got {value}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
