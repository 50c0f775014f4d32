"""
Pricing — итоги корзины: валютные подытоги, unified итог, скидка, налог.
"""

from .engine import CurrencyBuckets, DiscountBreakdown, PricingEngine, PricingResult

__all__ = [
    "PricingEngine",
    "PricingResult",
    "CurrencyBuckets",
    "DiscountBreakdown",
]
