"""
Cart — ledger строк корзины кассы.
"""

from .ledger import CartLedger

__all__ = ["CartLedger"]
