"""
Checkout — кассовая сессия, state machine, commit и pro-forma.
"""

from .ports import (
    CommitFailure,
    CommitSuccess,
    CommittedLine,
    ProductCatalog,
    TransactionCommitter,
    parse_commit_result,
)
from .proforma import ProformaConfig, ProformaNumberSequence, ProformaQuote, build_proforma
from .session import CheckoutSession, classify_commit_failure
from .snapshot import build_cart_snapshot
from .state_machine import CheckoutEvent, CheckoutState, CheckoutStateMachine, CheckoutTransitionResult

__all__ = [
    # Ports
    "ProductCatalog",
    "TransactionCommitter",
    "CommitSuccess",
    "CommitFailure",
    "CommittedLine",
    "parse_commit_result",
    # State machine
    "CheckoutState",
    "CheckoutEvent",
    "CheckoutStateMachine",
    "CheckoutTransitionResult",
    # Session
    "CheckoutSession",
    "classify_commit_failure",
    "build_cart_snapshot",
    # Pro-forma
    "ProformaConfig",
    "ProformaNumberSequence",
    "ProformaQuote",
    "build_proforma",
]
