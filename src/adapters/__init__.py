"""
Adapters — реализации внешних портов.
"""

from .memory import InMemoryProductCatalog, InMemoryTransactionCommitter

__all__ = ["InMemoryProductCatalog", "InMemoryTransactionCommitter"]
