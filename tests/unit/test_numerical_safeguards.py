"""
Тесты для модуля Numerical Safeguards

Проверяет:
1. Округление half-away-from-zero (в т.ч. двоичные хвосты float)
2. Проверку целых чисел для штучных количеств
3. NaN/Inf проверки
4. Сравнение с допуском и превышение остатка
5. Clamp и безопасное деление
6. Валидацию параметров
"""

import math

import pytest

from src.core.math.numerical_safeguards import (
    EPS_QTY,
    clamp,
    exceeds,
    is_close,
    is_valid_float,
    is_whole_number,
    round_half_away_from_zero,
    round_to_whole,
    safe_divide,
    validate_non_negative,
    validate_positive,
)


# =============================================================================
# ROUNDING
# =============================================================================


class TestRoundHalfAwayFromZero:
    """Тесты для round_half_away_from_zero."""

    def test_binary_tail_rounds_up(self):
        """2.675 округляется до 2.68 (встроенный round даёт 2.67)."""
        assert round(2.675, 2) == 2.67
        assert round_half_away_from_zero(2.675, 2) == 2.68

    def test_half_rounds_away_from_zero(self):
        assert round_half_away_from_zero(0.5, 0) == 1.0
        assert round_half_away_from_zero(2.5, 0) == 3.0
        assert round_half_away_from_zero(-0.5, 0) == -1.0
        assert round_half_away_from_zero(-2.5, 0) == -3.0

    def test_box_area_product(self):
        """Остаток 7 коробок * 1.44 m² = 10.08 без фантомного хвоста."""
        assert round_half_away_from_zero(7 * 1.44, 2) == 10.08

    def test_already_rounded_value_unchanged(self):
        assert round_half_away_from_zero(15.5, 2) == 15.5

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="non-finite"):
            round_half_away_from_zero(float("nan"), 2)

    def test_inf_rejected(self):
        with pytest.raises(ValueError, match="non-finite"):
            round_half_away_from_zero(float("inf"), 2)

    def test_negative_decimals_rejected(self):
        with pytest.raises(ValueError, match="decimals"):
            round_half_away_from_zero(1.0, -1)


class TestRoundToWhole:
    """Тесты для round_to_whole (барры из тоннажа)."""

    def test_quarter_tonne_exact(self):
        assert round_to_whole(0.25 * 480) == 120

    def test_remainder_absorbed(self):
        assert round_to_whole(0.3 * 83) == 25  # 24.9
        assert round_to_whole(0.1 * 25) == 3  # 2.5 → 3

    def test_returns_int(self):
        assert isinstance(round_to_whole(7.0), int)


class TestIsWholeNumber:
    """Тесты для is_whole_number."""

    def test_integers(self):
        assert is_whole_number(10)
        assert is_whole_number(10.0)

    def test_float_noise_tolerated(self):
        assert is_whole_number(0.1 * 30)  # 3.0000000000000004

    def test_fraction_rejected(self):
        assert not is_whole_number(2.5)
        assert not is_whole_number(0.001)

    def test_non_finite_rejected(self):
        assert not is_whole_number(float("nan"))
        assert not is_whole_number(float("inf"))


# =============================================================================
# COMPARISONS
# =============================================================================


class TestComparisons:
    """Тесты для is_valid_float / is_close / exceeds."""

    def test_is_valid_float(self):
        assert is_valid_float(1.0)
        assert is_valid_float(0)
        assert not is_valid_float(math.nan)
        assert not is_valid_float(-math.inf)
        assert not is_valid_float("1.0")  # type: ignore[arg-type]

    def test_is_close(self):
        assert is_close(0.1 + 0.2, 0.3)
        assert not is_close(0.3, 0.31)

    def test_exceeds_strict(self):
        assert exceeds(10, 3)
        assert not exceeds(3, 3)
        assert not exceeds(2, 3)

    def test_exceeds_ignores_float_tail(self):
        assert not exceeds(15.5 + EPS_QTY / 2, 15.5)


# =============================================================================
# UTILITIES
# =============================================================================


class TestClamp:
    """Тесты для clamp."""

    def test_within_range(self):
        assert clamp(50.0, 0.0, 100.0) == 50.0

    def test_above_max(self):
        assert clamp(150.0, 0.0, 100.0) == 100.0

    def test_below_min(self):
        assert clamp(-5.0, 0.0, 100.0) == 0.0

    def test_open_bounds(self):
        assert clamp(-5.0, None, 100.0) == -5.0
        assert clamp(500.0, 0.0, None) == 500.0


class TestSafeDivide:
    """Тесты для safe_divide."""

    def test_normal_division(self):
        assert safe_divide(10.0, 4.0) == 2.5

    def test_zero_denominator_returns_fallback(self):
        assert safe_divide(10.0, 0.0) == 0.0
        assert safe_divide(10.0, 0.0, fallback=-1.0) == -1.0

    def test_nan_input_returns_fallback(self):
        assert safe_divide(math.nan, 2.0) == 0.0


class TestValidation:
    """Тесты для validate_positive / validate_non_negative."""

    def test_validate_positive(self):
        validate_positive(0.01, "rate")
        with pytest.raises(ValueError, match="rate must be positive"):
            validate_positive(0.0, "rate")
        with pytest.raises(ValueError, match="not NaN/Inf"):
            validate_positive(math.inf, "rate")

    def test_validate_non_negative(self):
        validate_non_negative(0.0, "stock")
        with pytest.raises(ValueError, match="stock must be non-negative"):
            validate_non_negative(-1.0, "stock")
