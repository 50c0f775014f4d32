"""
Unit conversion — ввод продавца → canonical количество по категории.
"""

from .converter import UnitConverter
from .display import bars_to_weight, boxes_required, tonnage_label
from .rules import (
    DEFAULT_RULES,
    AreaRule,
    BulkCountRule,
    CategoryRule,
    ConversionResult,
    EntryUnit,
    GenericRule,
)

__all__ = [
    "UnitConverter",
    "CategoryRule",
    "AreaRule",
    "BulkCountRule",
    "GenericRule",
    "DEFAULT_RULES",
    "ConversionResult",
    "EntryUnit",
    # Display
    "boxes_required",
    "bars_to_weight",
    "tonnage_label",
]
