"""
CheckoutSession — оркестратор кассовой сессии

Связывает CartLedger, PricingEngine, StockValidator и TransactionCommitter
через CheckoutStateMachine.

ПРОТОКОЛ COMMIT (двухфазный):
1. begin_checkout(): SessionConfig читается ОДИН раз, создаётся PricingEngine
2. commit():
   a) StockValidator.validate() — свежее чтение остатков; нехватка → ABORTED + StockError
   b) снапшот корзины (cart_snapshot.json) → TransactionCommitter.submit()
   c) отказ или недоставленный запрос → ABORTED + CommitError;
      любой иной сбой после отправки → COMMIT_UNKNOWN + CommitOutcomeUnknown
   d) успех → COMMITTED, корзина очищается

Ни один путь отказа не изменяет корзину. Автоматических повторов нет.
"""

import logging
from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from jsonschema import ValidationError as SchemaValidationError

from src.cart.ledger import CartLedger
from src.conversion.converter import UnitConverter
from src.conversion.rules import EntryUnit
from src.core.contracts.validators import CartSnapshotValidator, CommitResultValidator
from src.core.domain.cart import Cart, CartLine, CustomerInfo, DiscountKind, DiscountSpec, PaymentMethod
from src.core.domain.currency import Currency
from src.core.domain.product import Product
from src.core.domain.session import SessionConfig
from src.core.errors import (
    CheckoutStateError,
    CommitError,
    CommitFailureKind,
    CommitOutcomeUnknown,
    StockError,
)
from src.gatekeeper.stock_validator import StockValidationResult, StockValidator, StockValidatorConfig
from src.pricing.engine import PricingEngine, PricingResult

from .ports import CommitFailure, CommitSuccess, ProductCatalog, TransactionCommitter, parse_commit_result
from .proforma import ProformaNumberSequence, ProformaQuote, build_proforma
from .snapshot import build_cart_snapshot
from .state_machine import CheckoutEvent, CheckoutState, CheckoutStateMachine, CheckoutTransitionResult

logger = logging.getLogger("pos.checkout")

ConfigSource = Callable[[], SessionConfig]


# =============================================================================
# FAILURE CLASSIFICATION
# =============================================================================


# Порядок важен: первое совпадение определяет класс
_FAILURE_MARKERS: tuple[tuple[CommitFailureKind, tuple[str, ...]], ...] = (
    (CommitFailureKind.INVALID_QUANTITY, ("22p02", "integer")),
    (CommitFailureKind.STOCK, ("stock",)),
    (CommitFailureKind.AUTH, ("session", "auth", "token", "jwt")),
    (CommitFailureKind.NETWORK, ("network", "fetch", "connection")),
    (CommitFailureKind.SERVER, ("server", "service")),
)


def classify_commit_failure(error_code: str | None, message: str | None) -> CommitFailureKind:
    """
    Класс отказа committer по коду и сообщению.

    Нераспознанный отказ — REMOTE_REJECTED: committer ответил, продажа не записана.
    """
    text = f"{error_code or ''} {message or ''}".lower()
    for kind, markers in _FAILURE_MARKERS:
        if any(marker in text for marker in markers):
            return kind
    return CommitFailureKind.REMOTE_REJECTED


# =============================================================================
# SESSION
# =============================================================================


class CheckoutSession:
    """
    Кассовая сессия одного продавца.

    Мутации строго последовательные (один владелец). Единственная точка
    ожидания — вызов TransactionCommitter.submit().
    """

    def __init__(
        self,
        catalog: ProductCatalog,
        committer: TransactionCommitter,
        config_source: ConfigSource | None = None,
        converter: UnitConverter | None = None,
        validator_config: StockValidatorConfig | None = None,
    ):
        """
        Args:
            catalog: Каталог продуктов
            committer: Внешний атомарный commit
            config_source: Чтение настроек сессии (вызывается при begin_checkout)
            converter: Конвертер единиц (по умолчанию правила по умолчанию)
            validator_config: Конфигурация StockValidator
        """
        self.catalog = catalog
        self.committer = committer
        self.config_source = config_source or SessionConfig
        self.converter = converter or UnitConverter()
        self.ledger = CartLedger(self.converter)
        self.validator = StockValidator(catalog, self.converter, validator_config)
        self.state_machine = CheckoutStateMachine()

        self._state = CheckoutState.BROWSING
        self._engine: PricingEngine | None = None
        self._last_sale: CommitSuccess | None = None
        self._last_failure: CommitError | StockError | None = None

        self._snapshot_validator = CartSnapshotValidator()
        self._result_validator = CommitResultValidator()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def cart(self) -> Cart:
        return self.ledger.cart

    @property
    def session_config(self) -> SessionConfig | None:
        """Зафиксированная конфигурация (None вне checkout)."""
        return self._engine.config if self._engine is not None else None

    @property
    def last_sale(self) -> CommitSuccess | None:
        return self._last_sale

    @property
    def last_failure(self) -> CommitError | StockError | None:
        return self._last_failure

    def _evaluate(self, event: CheckoutEvent, operation: str) -> CheckoutTransitionResult:
        result = self.state_machine.evaluate_transition(self._state, event, len(self.cart.lines))
        if not result.allowed:
            raise CheckoutStateError(result.details, state=self._state.value, operation=operation)
        return result

    def _apply(self, event: CheckoutEvent, operation: str) -> None:
        self._state = self._evaluate(event, operation).new_state

    def _require_transition(self, event: CheckoutEvent, operation: str) -> None:
        """Проверка допустимости до выполнения операции (без перехода)."""
        if not self.state_machine.can_transition(self._state, event):
            raise CheckoutStateError(
                f"{operation} is not allowed in state {self._state.value}",
                state=self._state.value,
                operation=operation,
            )

    def _after_edit(self, operation: str) -> None:
        event = CheckoutEvent.CART_EMPTIED if self.ledger.is_empty else CheckoutEvent.CART_EDITED
        self._apply(event, operation)
        if self._state in (CheckoutState.CART, CheckoutState.BROWSING):
            self._engine = None

    # -------------------------------------------------------------------------
    # Cart
    # -------------------------------------------------------------------------

    def browse(self, product_ids: Sequence[str]) -> list[Product]:
        """Чтение каталога для отображения (кэш допустим)."""
        return self.catalog.fetch(product_ids)

    def add(self, product: Product, quantity: float, unit: EntryUnit | None = None) -> CartLine:
        self._require_transition(CheckoutEvent.LINE_ADDED, "add")
        line = self.ledger.add(product, quantity, unit)
        self._apply(CheckoutEvent.LINE_ADDED, "add")
        self._engine = None
        return line

    def set_quantity(self, product_id: str, quantity: float, product: Product | None = None) -> CartLine:
        self._require_transition(CheckoutEvent.CART_EDITED, "set_quantity")
        line = self.ledger.set_quantity(product_id, quantity, product)
        self._after_edit("set_quantity")
        return line

    def adjust_quantity(self, product_id: str, step: int) -> CartLine | None:
        self._require_transition(CheckoutEvent.CART_EDITED, "adjust_quantity")
        line = self.ledger.adjust_quantity(product_id, step)
        self._after_edit("adjust_quantity")
        return line

    def remove(self, product_id: str) -> CartLine:
        self._require_transition(CheckoutEvent.CART_EDITED, "remove")
        line = self.ledger.remove(product_id)
        self._after_edit("remove")
        return line

    def set_discount(
        self,
        kind: DiscountKind,
        value: float = 0.0,
        currency: Currency | None = None,
    ) -> DiscountSpec:
        self._require_editable("set_discount")
        return self.ledger.set_discount(kind, value, currency)

    def set_customer(self, name: str | None = None, address: str | None = None) -> CustomerInfo:
        self._require_editable("set_customer")
        return self.ledger.set_customer(name, address)

    def remaining_stock(self, product: Product) -> float:
        return self.ledger.remaining_stock(product)

    def _require_editable(self, operation: str) -> None:
        if self._state == CheckoutState.COMMIT_UNKNOWN:
            raise CheckoutStateError(
                "Cart is locked until the commit outcome is resolved",
                state=self._state.value,
                operation=operation,
            )

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    def price(self) -> PricingResult:
        """
        Итоги корзины.

        В checkout — зафиксированным движком сессии, иначе — по текущим
        настройкам (предварительный расчёт для отображения).
        """
        engine = self._engine or PricingEngine(self.config_source())
        return engine.price(self.cart)

    def quote(self, sequence: ProformaNumberSequence, issued_on: date | None = None) -> ProformaQuote:
        """Pro-forma из текущей корзины (без проверки и списания остатков)."""
        engine = self._engine or PricingEngine(self.config_source())
        return build_proforma(self.cart, engine, sequence, issued_on)

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    def begin_checkout(self) -> PricingResult:
        """
        Переход в CHECKOUT: настройки сессии читаются один раз.

        Повтор из ABORTED без правки корзины продолжает ту же сессию с
        зафиксированными настройками. Состояние меняется только после
        успешного чтения настроек.

        Raises:
            CheckoutStateError: корзина пуста или состояние не допускает checkout
        """
        transition = self._evaluate(CheckoutEvent.BEGIN_CHECKOUT, "begin_checkout")
        engine = self._engine
        if engine is None:
            config = self.config_source()
            engine = PricingEngine(config)
            logger.info(
                "Checkout started: lines=%d rate=%s display=%s tax=%s%%",
                len(self.cart.lines), config.exchange_rate, config.display_currency.value, config.tax_rate,
            )
        else:
            logger.info("Checkout resumed: lines=%d rate=%s", len(self.cart.lines), engine.config.exchange_rate)

        self._engine = engine
        self._state = transition.new_state
        return engine.price(self.cart)

    def cancel_checkout(self) -> None:
        """Отмена до отправки commit; корзина сохраняется."""
        self._apply(CheckoutEvent.CANCEL_CHECKOUT, "cancel_checkout")
        self._engine = None

    def validate_stock(self) -> StockValidationResult:
        """Фаза 1 без перехода состояния (предварительная проверка)."""
        return self.validator.validate(self.cart)

    def build_snapshot(self, payment_method: PaymentMethod = PaymentMethod.CASH) -> dict[str, Any]:
        if self._engine is None:
            raise CheckoutStateError(
                "Snapshot requires an active checkout",
                state=self._state.value,
                operation="build_snapshot",
            )
        snapshot = build_cart_snapshot(self.cart, self._engine.price(self.cart), payment_method)
        self._snapshot_validator.validate(snapshot)
        return snapshot

    def commit(self, payment_method: PaymentMethod = PaymentMethod.CASH) -> CommitSuccess:
        """
        Двухфазный commit: проверка остатков, затем атомарный commit.

        Returns:
            CommitSuccess (корзина очищена)

        Raises:
            CheckoutStateError: сессия не в CHECKOUT
            StockError: нехватка по свежим остаткам (→ ABORTED, корзина сохранена)
            CommitError: отказ committer (→ ABORTED, корзина сохранена)
            CommitOutcomeUnknown: исход после отправки неизвестен
                (→ COMMIT_UNKNOWN, корзина сохранена)
        """
        if self._state != CheckoutState.CHECKOUT:
            raise CheckoutStateError(
                f"commit is not allowed in state {self._state.value}",
                state=self._state.value,
                operation="commit",
            )

        # Фаза 1: авторитетная проверка остатков
        validation = self.validator.validate(self.cart)
        if not validation.commit_allowed:
            error = StockError(validation.shortfalls)
            self._fail(CheckoutEvent.STOCK_REJECTED, error)
            raise error

        # Фаза 2: commit
        snapshot = self.build_snapshot(payment_method)
        try:
            raw = self.committer.submit(snapshot)
        except ConnectionRefusedError as e:
            # Соединение не установлено: запрос не доставлен
            error = CommitError(
                f"Commit request failed: {e}",
                kind=CommitFailureKind.NETWORK,
                raw_result=e,
            )
            self._fail(CheckoutEvent.COMMIT_FAILED, error)
            raise error from e
        except Exception as e:
            # Запрос мог быть доставлен: повтор без сверки запрещён
            error = CommitOutcomeUnknown(
                f"Commit outcome unknown: {type(e).__name__}: {e}",
                raw_result=e,
            )
            self._fail(CheckoutEvent.COMMIT_TIMED_OUT, error)
            raise error from e

        try:
            payload = dict(raw)
            self._result_validator.validate(payload)
            result = parse_commit_result(payload)
        except Exception as e:
            # Ответ получен, но не разобран: продажа могла быть записана
            detail = e.message if isinstance(e, SchemaValidationError) else f"{type(e).__name__}: {e}"
            error = CommitOutcomeUnknown(f"Malformed commit result: {detail}", raw_result=raw)
            self._fail(CheckoutEvent.COMMIT_TIMED_OUT, error)
            raise error from e

        if isinstance(result, CommitFailure):
            error = CommitError(
                result.message or "Commit rejected",
                kind=classify_commit_failure(result.error_code, result.message),
                error_code=result.error_code,
                raw_result=raw,
            )
            self._fail(CheckoutEvent.COMMIT_FAILED, error)
            raise error

        self._succeed(CheckoutEvent.COMMIT_SUCCEEDED, result)
        return result

    def resolve_unknown(self, committed: bool, sale: CommitSuccess | None = None) -> None:
        """
        Явное разрешение COMMIT_UNKNOWN после сверки с хранилищем.

        Args:
            committed: True — продажа записана (корзина очищается), False — нет
            sale: Подтверждённая продажа (если известна)
        """
        if committed:
            self._apply(CheckoutEvent.OUTCOME_CONFIRMED_SUCCESS, "resolve_unknown")
            self._last_sale = sale
            self._last_failure = None
            self.ledger.clear()
            self._engine = None
        else:
            self._apply(CheckoutEvent.OUTCOME_CONFIRMED_FAILURE, "resolve_unknown")

    def reset(self) -> None:
        """Явный сброс: корзина очищается, сессия возвращается в BROWSING."""
        self._apply(CheckoutEvent.RESET, "reset")
        self.ledger.clear()
        self._engine = None
        self._last_failure = None

    # -------------------------------------------------------------------------
    # Outcome
    # -------------------------------------------------------------------------

    def _fail(self, event: CheckoutEvent, error: CommitError | StockError) -> None:
        self._apply(event, "commit")
        self._last_failure = error
        logger.warning("Commit aborted (%s): %s", self._state.value, error)

    def _succeed(self, event: CheckoutEvent, result: CommitSuccess) -> None:
        self._apply(event, "commit")
        self._last_sale = result
        self._last_failure = None
        self.ledger.clear()
        self._engine = None
        logger.info("Sale committed: sale_id=%s lines=%d", result.sale_id, len(result.committed_lines))
