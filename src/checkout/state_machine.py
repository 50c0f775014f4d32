"""Checkout State Machine — жизненный цикл кассовой сессии.

Состояния:
- BROWSING: корзина пуста
- CART: в корзине есть строки, идёт сборка
- CHECKOUT: конфигурация сессии зафиксирована, ожидается commit
- COMMITTED: продажа записана, корзина очищена
- ABORTED: commit отклонён (остаток или сбой committer), корзина сохранена
- COMMIT_UNKNOWN: commit отправлен, ответ не получен (timeout)

Переходы:
- BROWSING → CART: добавлена первая строка
- CART → CHECKOUT: требуется ≥1 строка
- CHECKOUT → COMMITTED: StockValidator пропустил и committer подтвердил
- CHECKOUT → ABORTED: StockValidator отклонил или committer вернул отказ
- CHECKOUT → COMMIT_UNKNOWN: timeout во время commit
- ABORTED → CHECKOUT: повторная попытка (корзина сохранена)
- CHECKOUT/ABORTED → CART: правка корзины
- COMMIT_UNKNOWN → COMMITTED/ABORTED: только явное подтверждение исхода
- * → BROWSING: только явный RESET (корзина очищается) или опустошение корзины

ABORTED не терминальное и никогда не очищает корзину.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final

logger = logging.getLogger("pos.checkout")


class CheckoutState(str, Enum):
    """Состояние кассовой сессии."""

    BROWSING = "BROWSING"
    CART = "CART"
    CHECKOUT = "CHECKOUT"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"
    COMMIT_UNKNOWN = "COMMIT_UNKNOWN"


class CheckoutEvent(str, Enum):
    """Событие, запрашивающее переход."""

    LINE_ADDED = "LINE_ADDED"
    CART_EDITED = "CART_EDITED"
    CART_EMPTIED = "CART_EMPTIED"
    BEGIN_CHECKOUT = "BEGIN_CHECKOUT"
    CANCEL_CHECKOUT = "CANCEL_CHECKOUT"
    STOCK_REJECTED = "STOCK_REJECTED"
    COMMIT_SUCCEEDED = "COMMIT_SUCCEEDED"
    COMMIT_FAILED = "COMMIT_FAILED"
    COMMIT_TIMED_OUT = "COMMIT_TIMED_OUT"
    OUTCOME_CONFIRMED_SUCCESS = "OUTCOME_CONFIRMED_SUCCESS"
    OUTCOME_CONFIRMED_FAILURE = "OUTCOME_CONFIRMED_FAILURE"
    RESET = "RESET"


_S = CheckoutState
_E = CheckoutEvent

# (state, event) → new_state. RESET разрешён из любого состояния.
TRANSITIONS: Final[dict[tuple[CheckoutState, CheckoutEvent], CheckoutState]] = {
    (_S.BROWSING, _E.LINE_ADDED): _S.CART,
    (_S.COMMITTED, _E.LINE_ADDED): _S.CART,
    (_S.CART, _E.LINE_ADDED): _S.CART,
    (_S.CART, _E.CART_EDITED): _S.CART,
    (_S.CART, _E.CART_EMPTIED): _S.BROWSING,
    (_S.CART, _E.BEGIN_CHECKOUT): _S.CHECKOUT,
    (_S.CHECKOUT, _E.LINE_ADDED): _S.CART,
    (_S.CHECKOUT, _E.CART_EDITED): _S.CART,
    (_S.CHECKOUT, _E.CART_EMPTIED): _S.BROWSING,
    (_S.CHECKOUT, _E.CANCEL_CHECKOUT): _S.CART,
    (_S.CHECKOUT, _E.STOCK_REJECTED): _S.ABORTED,
    (_S.CHECKOUT, _E.COMMIT_SUCCEEDED): _S.COMMITTED,
    (_S.CHECKOUT, _E.COMMIT_FAILED): _S.ABORTED,
    (_S.CHECKOUT, _E.COMMIT_TIMED_OUT): _S.COMMIT_UNKNOWN,
    (_S.ABORTED, _E.BEGIN_CHECKOUT): _S.CHECKOUT,
    (_S.ABORTED, _E.LINE_ADDED): _S.CART,
    (_S.ABORTED, _E.CART_EDITED): _S.CART,
    (_S.ABORTED, _E.CART_EMPTIED): _S.BROWSING,
    (_S.COMMIT_UNKNOWN, _E.OUTCOME_CONFIRMED_SUCCESS): _S.COMMITTED,
    (_S.COMMIT_UNKNOWN, _E.OUTCOME_CONFIRMED_FAILURE): _S.ABORTED,
}


@dataclass(frozen=True)
class CheckoutTransitionResult:
    """Результат оценки перехода."""

    new_state: CheckoutState
    previous_state: CheckoutState
    event: CheckoutEvent

    allowed: bool
    transition_occurred: bool
    transition_reason: str

    details: str


class CheckoutStateMachine:
    """Таблица переходов кассовой сессии.

    Сама машина не хранит состояние: вызывающий передаёт текущее состояние
    и применяет new_state только при allowed=True.
    """

    def evaluate_transition(
        self,
        current_state: CheckoutState,
        event: CheckoutEvent,
        cart_line_count: int = 0,
    ) -> CheckoutTransitionResult:
        """Оценка перехода.

        Args:
            current_state: текущее состояние
            event: событие
            cart_line_count: число строк корзины (guard для BEGIN_CHECKOUT)

        Returns:
            CheckoutTransitionResult (allowed=False если переход запрещён)
        """
        if event == CheckoutEvent.RESET:
            return self._create_result(
                current_state, event, CheckoutState.BROWSING,
                reason="reset",
                details="Explicit reset, cart emptied",
            )

        target = TRANSITIONS.get((current_state, event))
        if target is None:
            return self._reject(
                current_state, event,
                reason="transition_not_allowed",
                details=f"{event.value} is not allowed in state {current_state.value}",
            )

        if event == CheckoutEvent.BEGIN_CHECKOUT and cart_line_count < 1:
            return self._reject(
                current_state, event,
                reason="empty_cart",
                details="Checkout requires at least one cart line",
            )

        return self._create_result(
            current_state, event, target,
            reason=event.value.lower(),
            details=f"{current_state.value} -> {target.value}",
        )

    def can_transition(self, current_state: CheckoutState, event: CheckoutEvent) -> bool:
        return event == CheckoutEvent.RESET or (current_state, event) in TRANSITIONS

    def _create_result(
        self,
        previous_state: CheckoutState,
        event: CheckoutEvent,
        new_state: CheckoutState,
        reason: str,
        details: str,
    ) -> CheckoutTransitionResult:
        occurred = new_state != previous_state
        if occurred:
            logger.info("Checkout transition %s -> %s (%s)", previous_state.value, new_state.value, event.value)
        return CheckoutTransitionResult(
            new_state=new_state,
            previous_state=previous_state,
            event=event,
            allowed=True,
            transition_occurred=occurred,
            transition_reason=reason,
            details=details,
        )

    def _reject(
        self,
        current_state: CheckoutState,
        event: CheckoutEvent,
        reason: str,
        details: str,
    ) -> CheckoutTransitionResult:
        return CheckoutTransitionResult(
            new_state=current_state,
            previous_state=current_state,
            event=event,
            allowed=False,
            transition_occurred=False,
            transition_reason=reason,
            details=details,
        )
