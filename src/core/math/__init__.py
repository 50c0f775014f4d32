"""
Core math modules

Численные примитивы кассы: округление, сравнения с допуском, безопасное деление.
"""

from src.core.math.numerical_safeguards import (
    # Epsilon constants
    DISPLAY_DECIMALS,
    EPS_FLOAT_COMPARE_ABS,
    EPS_FLOAT_COMPARE_REL,
    EPS_MONEY,
    EPS_QTY,
    # Rounding
    is_whole_number,
    round_half_away_from_zero,
    round_to_whole,
    # Comparisons
    exceeds,
    is_close,
    is_valid_float,
    # Utilities
    clamp,
    safe_divide,
    # Validation
    validate_non_negative,
    validate_positive,
)

__all__ = [
    # Epsilon constants
    "DISPLAY_DECIMALS",
    "EPS_FLOAT_COMPARE_ABS",
    "EPS_FLOAT_COMPARE_REL",
    "EPS_MONEY",
    "EPS_QTY",
    # Rounding
    "round_half_away_from_zero",
    "round_to_whole",
    "is_whole_number",
    # Comparisons
    "is_valid_float",
    "is_close",
    "exceeds",
    # Utilities
    "clamp",
    "safe_divide",
    # Validation
    "validate_positive",
    "validate_non_negative",
]
