"""
Display helpers — величины только для отображения

Ничто из этого модуля не участвует в расчёте resolved_quantity или цены.
"""

from typing import Final

from src.core.math.numerical_safeguards import round_half_away_from_zero, validate_positive

# Толерантность распознавания дробей тонны (1/4, 1/2, 3/4)
TONNAGE_FRACTION_TOL: Final[float] = 0.01

_TONNAGE_FRACTIONS: Final[tuple[tuple[float, str], ...]] = (
    (0.25, "1/4"),
    (0.5, "1/2"),
    (0.75, "3/4"),
)


def boxes_required(area: float, area_per_box: float) -> float:
    """
    Сколько коробок покрывает площадь (округление до 2 знаков).

    Examples:
        >>> boxes_required(15.5, 1.44)
        10.76
    """
    validate_positive(area_per_box, "area_per_box")
    return round_half_away_from_zero(area / area_per_box, 2)


def bars_to_weight(bars: float, bars_per_unit: float) -> float:
    """Вес, соответствующий количеству барр (информационно, без обратной конверсии)."""
    validate_positive(bars_per_unit, "bars_per_unit")
    return bars / bars_per_unit


def tonnage_label(tonnage: float) -> str:
    """
    Человекочитаемая метка веса в тоннах с дробями.

    Examples:
        >>> tonnage_label(0.25)
        '1/4 tonne'
        >>> tonnage_label(2.5)
        '2 1/2 tonnes'
        >>> tonnage_label(3)
        '3 tonnes'
    """
    integer_part = int(tonnage)
    decimal_part = tonnage - integer_part

    fraction = ""
    for value, label in _TONNAGE_FRACTIONS:
        if abs(decimal_part - value) < TONNAGE_FRACTION_TOL:
            fraction = label
            break
    else:
        if decimal_part > TONNAGE_FRACTION_TOL:
            fraction = f"{decimal_part:.2f}"

    if integer_part > 0:
        if fraction:
            return f"{integer_part} {fraction} tonne{'s' if tonnage > 1 else ''}"
        return f"{integer_part} tonne{'s' if integer_part > 1 else ''}"

    if fraction:
        return f"{fraction} tonne"
    return f"{tonnage:.2f} tonne"
