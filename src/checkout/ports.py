"""
Ports — внешние интерфейсы ядра кассы

ProductCatalog: источник истины для цены, категории, коэффициентов и остатка.
TransactionCommitter: атомарная операция "записать продажу + списать остаток".

Ответ committer — dict, соответствующий contracts/schema/commit_result.json;
разбирается в CommitSuccess | CommitFailure.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from src.core.domain.product import Product


# =============================================================================
# PROTOCOLS
# =============================================================================


class ProductCatalog(Protocol):
    """Каталог продуктов."""

    def fetch(self, product_ids: Sequence[str], *, fresh: bool = False) -> list[Product]:
        """
        Продукты по идентификаторам. Отсутствующие id не возвращаются.

        fresh=True — авторитетное чтение в обход кэша (обязательно на commit).
        """
        ...


class TransactionCommitter(Protocol):
    """Внешний атомарный commit продажи."""

    def submit(self, snapshot: dict[str, Any]) -> Mapping[str, Any]:
        """
        Returns:
            {success: True, sale_id, committed_lines} | {success: False, error_code, message}

        Raises:
            TimeoutError: ответ не получен (исход неизвестен)
            ConnectionRefusedError: запрос не доставлен
            Exception: любой другой сбой трактуется как неизвестный исход
        """
        ...


# =============================================================================
# COMMIT RESULT
# =============================================================================


class CommittedLine(BaseModel):
    """Строка, списанная committer."""

    product_id: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    remaining_stock: float | None = Field(None, description="Остаток после списания")

    model_config = {"frozen": True}


class CommitSuccess(BaseModel):
    """Успешный commit."""

    success: Literal[True] = True
    sale_id: str = Field(..., min_length=1, description="Идентификатор продажи")
    committed_lines: tuple[CommittedLine, ...] = Field(default=())

    model_config = {"frozen": True}


class CommitFailure(BaseModel):
    """Отказ committer (продажа не записана)."""

    success: Literal[False] = False
    error_code: str | None = Field(None, description="Код ошибки committer")
    message: str = Field("", description="Сообщение об ошибке")

    model_config = {"frozen": True}


def parse_commit_result(raw: Mapping[str, Any]) -> CommitSuccess | CommitFailure:
    if raw.get("success") is True:
        return CommitSuccess.model_validate(raw)
    return CommitFailure.model_validate(raw)
