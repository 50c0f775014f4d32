"""
In-memory адаптеры ProductCatalog и TransactionCommitter

Используются в тестах и локальном запуске. Каталог моделирует кэш
browsing-чтений: fetch(fresh=False) может вернуть устаревший снапшот,
fetch(fresh=True) всегда читает текущее состояние и обновляет кэш.

Committer выполняет проверку и списание остатков под одной блокировкой
каталога — так же атомарно, как внешняя операция "записать продажу +
списать остаток".
"""

import itertools
import logging
import threading
from collections import deque
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from src.conversion.converter import UnitConverter
from src.core.domain.product import Product
from src.core.math.numerical_safeguards import exceeds, round_half_away_from_zero

logger = logging.getLogger("pos.adapters")


# =============================================================================
# CATALOG
# =============================================================================


class InMemoryProductCatalog:
    """Каталог продуктов в памяти."""

    def __init__(self, products: Iterable[Product] = ()):
        self.lock = threading.RLock()
        self._products: dict[str, Product] = {p.product_id: p for p in products}
        self._cache: dict[str, Product] = {}
        self.fresh_fetches = 0

    def add(self, product: Product) -> None:
        with self.lock:
            self._products[product.product_id] = product

    def get(self, product_id: str) -> Product | None:
        with self.lock:
            return self._products.get(product_id)

    def fetch(self, product_ids: Sequence[str], *, fresh: bool = False) -> list[Product]:
        with self.lock:
            if fresh:
                self.fresh_fetches += 1
            found = []
            for product_id in product_ids:
                product = None if fresh else self._cache.get(product_id)
                if product is None:
                    product = self._products.get(product_id)
                    if product is None:
                        continue
                    self._cache[product_id] = product
                found.append(product)
            return found

    def set_stock(self, product_id: str, current_stock: float) -> Product:
        """Изменение остатка (другой продавец, приход товара)."""
        with self.lock:
            product = self._products[product_id].model_copy(update={"current_stock": current_stock})
            self._products[product_id] = product
            return product

    def remove(self, product_id: str) -> None:
        with self.lock:
            self._products.pop(product_id, None)


# =============================================================================
# COMMITTER
# =============================================================================


class InMemoryTransactionCommitter:
    """
    Атомарный commit продажи над InMemoryProductCatalog.

    Все строки проверяются до списания: либо списываются все, либо ни одна.
    """

    def __init__(self, catalog: InMemoryProductCatalog, converter: UnitConverter | None = None):
        self.catalog = catalog
        self.converter = converter or UnitConverter()
        self.submitted: list[dict[str, Any]] = []
        self.sales: dict[str, dict[str, Any]] = {}
        self._injected: deque[BaseException | Mapping[str, Any]] = deque()
        self._sale_seq = itertools.count(1)

    def inject(self, outcome: BaseException | Mapping[str, Any]) -> None:
        """Следующий submit() вернёт этот ответ или выбросит это исключение."""
        self._injected.append(outcome)

    def submit(self, snapshot: dict[str, Any]) -> dict[str, Any]:
        self.submitted.append(snapshot)

        if self._injected:
            outcome = self._injected.popleft()
            if isinstance(outcome, BaseException):
                raise outcome
            return dict(outcome)

        with self.catalog.lock:
            products: dict[str, Product] = {}
            for line in snapshot["lines"]:
                product_id = line["product_id"]
                product = self.catalog.get(product_id)
                if product is None or not product.is_active:
                    return _failure("PRODUCT_NOT_FOUND", f"Product {product_id} not found")

                available = self.converter.available_stock(product)
                if exceeds(line["resolved_quantity"], available):
                    return _failure(
                        "INSUFFICIENT_STOCK",
                        f"Insufficient stock for {product.name}: "
                        f"requested {line['resolved_quantity']}, available {available}",
                    )
                products[product_id] = product

            committed_lines = []
            for line in snapshot["lines"]:
                product = products[line["product_id"]]
                debit = self.converter.stock_debit(product, line["resolved_quantity"])
                remaining = max(0.0, round_half_away_from_zero(product.current_stock - debit, 2))
                self.catalog.set_stock(product.product_id, remaining)
                committed_lines.append({
                    "product_id": product.product_id,
                    "quantity": line["resolved_quantity"],
                    "remaining_stock": remaining,
                })

            sale_id = f"SALE-{next(self._sale_seq):06d}"
            self.sales[sale_id] = snapshot

        logger.info("Recorded sale %s with %d line(s)", sale_id, len(committed_lines))
        return {"success": True, "sale_id": sale_id, "committed_lines": committed_lines}


def _failure(error_code: str, message: str) -> dict[str, Any]:
    return {"success": False, "error_code": error_code, "message": message}
