"""
Contract Validation Module

Валидация JSON контрактов границы commit (снапшот корзины, ответ committer).
"""

from .validators import (
    CartSnapshotValidator,
    CommitResultValidator,
    ContractValidator,
    SchemaLoader,
    validate_cart_snapshot,
    validate_commit_result,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "CartSnapshotValidator",
    "CommitResultValidator",
    # Functions
    "validate_cart_snapshot",
    "validate_commit_result",
]
