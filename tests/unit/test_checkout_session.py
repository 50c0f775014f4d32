"""
Тесты для CheckoutSession (двухфазный validate-then-commit).

Покрытие:
- Полный путь до COMMITTED, списание остатков, очистка корзины
- Нехватка на checkout → ABORTED + StockError, корзина сохранена
- Отказ committer → ABORTED + CommitError с классификацией
- Timeout → COMMIT_UNKNOWN, явное разрешение
- Конфигурация сессии читается один раз
- RESET, отмена checkout, правка корзины в checkout
"""

import pytest

from src.adapters import InMemoryProductCatalog, InMemoryTransactionCommitter
from src.checkout import CheckoutSession, CheckoutState, ProformaNumberSequence, classify_commit_failure
from src.conversion import EntryUnit
from src.core.domain import ConversionFactors, Currency, DiscountKind, PaymentMethod, Product, SessionConfig
from src.core.errors import (
    CheckoutStateError,
    CommitError,
    CommitFailureKind,
    CommitOutcomeUnknown,
    StockError,
)


def make_rebar(current_stock: float = 50) -> Product:
    return Product(
        product_id="rebar-12",
        name="Fer 12mm",
        category="fer",
        canonical_unit="barre",
        base_price=450.0,
        currency=Currency.HTG,
        current_stock=current_stock,
        conversion=ConversionFactors(bars_per_unit=480),
    )


def make_tile(current_stock: float = 20) -> Product:
    return Product(
        product_id="tile-1",
        name="Carrelage 60x60",
        category="ceramique",
        canonical_unit="m²",
        base_price=25.0,
        currency=Currency.USD,
        current_stock=current_stock,
        conversion=ConversionFactors(area_per_box=1.44),
    )


def make_generic(product_id: str, base_price: float, currency: Currency, current_stock: float = 40) -> Product:
    return Product(
        product_id=product_id,
        name=f"Item {product_id}",
        category="materiaux",
        canonical_unit="unit",
        base_price=base_price,
        currency=currency,
        current_stock=current_stock,
    )


class ReadTimeout(Exception):
    """Timeout HTTP-клиента, не наследующий OSError."""


class EmptyResponseCommitter:
    """Committer, возвращающий пустой ответ вместо результата."""

    def __init__(self):
        self.submitted = []

    def submit(self, snapshot):
        self.submitted.append(snapshot)
        return None


class CountingConfigSource:
    """Источник настроек компании со счётчиком чтений."""

    def __init__(self, config: SessionConfig):
        self.config = config
        self.reads = 0

    def __call__(self) -> SessionConfig:
        self.reads += 1
        return self.config


@pytest.fixture
def catalog() -> InMemoryProductCatalog:
    return InMemoryProductCatalog([
        make_rebar(),
        make_tile(),
        make_generic("usd-item", 10.0, Currency.USD),
        make_generic("htg-item", 500.0, Currency.HTG),
    ])


@pytest.fixture
def committer(catalog) -> InMemoryTransactionCommitter:
    return InMemoryTransactionCommitter(catalog)


@pytest.fixture
def config_source() -> CountingConfigSource:
    return CountingConfigSource(SessionConfig(exchange_rate=132.0, display_currency=Currency.HTG, tax_rate=10.0))


@pytest.fixture
def session(catalog, committer, config_source) -> CheckoutSession:
    return CheckoutSession(catalog, committer, config_source)


# =============================================================================
# HAPPY PATH
# =============================================================================


class TestCommitSuccess:
    """Тесты успешного commit."""

    def test_full_flow(self, session, catalog, committer):
        assert session.state == CheckoutState.BROWSING

        session.add(catalog.get("rebar-12"), 10)
        assert session.state == CheckoutState.CART

        session.begin_checkout()
        assert session.state == CheckoutState.CHECKOUT

        sale = session.commit(PaymentMethod.CHEQUE)

        assert session.state == CheckoutState.COMMITTED
        assert sale.sale_id == "SALE-000001"
        assert session.last_sale == sale
        assert session.cart.is_empty
        assert catalog.get("rebar-12").current_stock == 40
        assert committer.submitted[0]["payment_method"] == "cheque"

    def test_snapshot_quantities(self, session, catalog, committer):
        catalog.set_stock("rebar-12", 500)
        session.add(catalog.get("rebar-12"), 0.25, EntryUnit.TONNE)
        session.add(catalog.get("tile-1"), 15.5)
        session.begin_checkout()
        session.commit()

        lines = {line["product_id"]: line for line in committer.submitted[0]["lines"]}
        assert lines["rebar-12"]["resolved_quantity"] == 120
        assert isinstance(lines["rebar-12"]["resolved_quantity"], int)
        assert lines["rebar-12"]["source_unit"] == "tonne"
        assert lines["tile-1"]["resolved_quantity"] == 15.5

    def test_area_debit_in_boxes(self, session, catalog):
        session.add(catalog.get("tile-1"), 15.5)
        session.begin_checkout()
        session.commit()

        # 15.5 / 1.44 = 10.76 коробки
        assert catalog.get("tile-1").current_stock == pytest.approx(9.24)

    def test_end_to_end_totals(self, session, catalog, committer):
        session.add(catalog.get("usd-item"), 3)
        session.add(catalog.get("htg-item"), 2)
        session.set_discount(DiscountKind.PERCENTAGE, 10)

        pricing = session.begin_checkout()
        assert pricing.unified_subtotal == pytest.approx(4960.0)
        assert pricing.taxable_amount == pytest.approx(4464.0)
        assert pricing.final_total == pytest.approx(4910.4)

        session.commit()
        totals = committer.submitted[0]["totals"]
        assert totals["final_total"] == pytest.approx(4910.4)
        assert committer.submitted[0]["exchange_rate"] == 132.0

    def test_new_cart_after_commit(self, session, catalog):
        session.add(catalog.get("rebar-12"), 1)
        session.begin_checkout()
        session.commit()

        session.add(catalog.get("rebar-12"), 1)
        assert session.state == CheckoutState.CART


# =============================================================================
# STOCK REJECTION
# =============================================================================


class TestStockRejection:
    """Тесты отказа по остаткам на границе commit."""

    def test_stock_dropped_from_50_to_3(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()

        catalog.set_stock("rebar-12", 3)  # другой продавец

        with pytest.raises(StockError) as exc_info:
            session.commit()

        shortfall = exc_info.value.shortfalls[0]
        assert shortfall.requested == 10
        assert shortfall.available == 3
        assert session.state == CheckoutState.ABORTED
        assert session.cart.find_line("rebar-12").resolved_quantity == 10
        assert session.last_failure is exc_info.value
        assert committer.submitted == []

    def test_retry_after_restock(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        catalog.set_stock("rebar-12", 3)
        with pytest.raises(StockError):
            session.commit()

        catalog.set_stock("rebar-12", 50)
        session.begin_checkout()
        session.commit()

        assert session.state == CheckoutState.COMMITTED

    def test_correct_quantity_and_retry(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        catalog.set_stock("rebar-12", 3)
        with pytest.raises(StockError):
            session.commit()

        session.set_quantity("rebar-12", 3, product=catalog.get("rebar-12"))
        assert session.state == CheckoutState.CART

        session.begin_checkout()
        session.commit()
        assert catalog.get("rebar-12").current_stock == 0


# =============================================================================
# COMMITTER FAILURES
# =============================================================================


class TestCommitFailure:
    """Тесты отказа TransactionCommitter."""

    def test_remote_rejection(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject({"success": False, "error_code": "PGRST301", "message": "JWT expired"})

        with pytest.raises(CommitError) as exc_info:
            session.commit()

        assert exc_info.value.kind == CommitFailureKind.AUTH
        assert exc_info.value.error_code == "PGRST301"
        assert session.state == CheckoutState.ABORTED
        assert session.cart.find_line("rebar-12") is not None
        assert catalog.get("rebar-12").current_stock == 50

    def test_network_error(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject(ConnectionRefusedError("connection refused"))

        with pytest.raises(CommitError) as exc_info:
            session.commit()

        assert exc_info.value.kind == CommitFailureKind.NETWORK
        assert session.state == CheckoutState.ABORTED
        assert not session.cart.is_empty

    def test_no_automatic_retry(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject({"success": False, "error_code": None, "message": "Internal server error"})

        with pytest.raises(CommitError):
            session.commit()

        assert len(committer.submitted) == 1

    def test_commit_outside_checkout(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        with pytest.raises(CheckoutStateError) as exc_info:
            session.commit()
        assert exc_info.value.state == "CART"


class TestClassifyCommitFailure:
    """Тесты классификации отказа committer."""

    @pytest.mark.parametrize(
        "error_code, message, kind",
        [
            ("22P02", "invalid input syntax for type integer: \"0.5\"", CommitFailureKind.INVALID_QUANTITY),
            ("INSUFFICIENT_STOCK", "Insufficient stock for Fer 12mm", CommitFailureKind.STOCK),
            (None, "JWT expired", CommitFailureKind.AUTH),
            (None, "Failed to fetch", CommitFailureKind.NETWORK),
            (None, "Internal server error", CommitFailureKind.SERVER),
            ("P0001", "Sale rejected", CommitFailureKind.REMOTE_REJECTED),
        ],
    )
    def test_classification(self, error_code, message, kind):
        assert classify_commit_failure(error_code, message) == kind


# =============================================================================
# OUTCOME UNKNOWN
# =============================================================================


class TestOutcomeUnknown:
    """Тесты timeout во время commit."""

    @pytest.fixture
    def timed_out(self, session, catalog, committer) -> CheckoutSession:
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject(TimeoutError("no response in 30s"))
        with pytest.raises(CommitOutcomeUnknown):
            session.commit()
        return session

    def test_timeout_is_not_failure(self, timed_out):
        assert timed_out.state == CheckoutState.COMMIT_UNKNOWN
        assert timed_out.last_failure.kind == CommitFailureKind.UNKNOWN
        assert not timed_out.cart.is_empty

    def test_cart_locked(self, timed_out, catalog):
        with pytest.raises(CheckoutStateError):
            timed_out.add(catalog.get("tile-1"), 1.0)
        with pytest.raises(CheckoutStateError):
            timed_out.set_discount(DiscountKind.PERCENTAGE, 5)
        with pytest.raises(CheckoutStateError):
            timed_out.begin_checkout()

    def test_resolved_as_committed(self, timed_out):
        timed_out.resolve_unknown(committed=True)

        assert timed_out.state == CheckoutState.COMMITTED
        assert timed_out.cart.is_empty

    def test_resolved_as_failed(self, timed_out):
        timed_out.resolve_unknown(committed=False)

        assert timed_out.state == CheckoutState.ABORTED
        assert not timed_out.cart.is_empty

    def test_malformed_result_is_unknown(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject({"success": True})

        with pytest.raises(CommitOutcomeUnknown, match="Malformed"):
            session.commit()
        assert session.state == CheckoutState.COMMIT_UNKNOWN

    @pytest.mark.parametrize(
        "error",
        [ReadTimeout("read timed out"), ConnectionResetError("reset by peer"), RuntimeError("boom")],
        ids=["client-timeout", "connection-reset", "unexpected"],
    )
    def test_any_error_after_dispatch_is_unknown(self, session, catalog, committer, error):
        """Исход неизвестен: повторная отправка той же продажи запрещена."""
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()
        committer.inject(error)

        with pytest.raises(CommitOutcomeUnknown) as exc_info:
            session.commit()

        assert exc_info.value.__cause__ is error
        assert session.state == CheckoutState.COMMIT_UNKNOWN
        with pytest.raises(CheckoutStateError):
            session.commit()
        assert len(committer.submitted) == 1

    def test_non_mapping_result_is_unknown(self, catalog):
        committer = EmptyResponseCommitter()
        session = CheckoutSession(catalog, committer)
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()

        with pytest.raises(CommitOutcomeUnknown, match="Malformed"):
            session.commit()

        assert session.state == CheckoutState.COMMIT_UNKNOWN
        assert not session.cart.is_empty
        assert len(committer.submitted) == 1


# =============================================================================
# SESSION CONFIG
# =============================================================================


class TestSessionConfig:
    """Тесты фиксации настроек сессии."""

    def test_config_read_once_per_checkout(self, session, catalog, config_source):
        session.add(catalog.get("usd-item"), 3)
        session.begin_checkout()
        reads = config_source.reads

        config_source.config = SessionConfig(exchange_rate=150.0)
        first = session.price()
        second = session.price()

        assert config_source.reads == reads
        assert session.session_config.exchange_rate == 132.0
        assert first.unified_subtotal == second.unified_subtotal == pytest.approx(3960.0)

    def test_new_checkout_rereads_config(self, session, catalog, config_source):
        session.add(catalog.get("usd-item"), 3)
        session.begin_checkout()
        session.cancel_checkout()

        config_source.config = SessionConfig(exchange_rate=150.0)
        session.begin_checkout()

        assert session.price().unified_subtotal == pytest.approx(4500.0)

    def test_retry_after_abort_keeps_session_rate(self, session, catalog, committer, config_source):
        """Повтор из ABORTED продолжает ту же сессию: курс не перечитывается."""
        session.add(catalog.get("usd-item"), 3)
        quoted = session.begin_checkout()
        catalog.set_stock("usd-item", 1)
        with pytest.raises(StockError):
            session.commit()

        config_source.config = SessionConfig(exchange_rate=150.0)
        catalog.set_stock("usd-item", 40)
        retried = session.begin_checkout()
        session.commit()

        assert quoted.final_total == pytest.approx(4356.0)
        assert retried.final_total == pytest.approx(4356.0)
        assert committer.submitted[-1]["totals"]["final_total"] == pytest.approx(4356.0)
        assert config_source.reads == 1

    def test_failed_config_read_leaves_cart_state(self, catalog, committer):
        def unavailable() -> SessionConfig:
            raise RuntimeError("company settings unavailable")

        session = CheckoutSession(catalog, committer, unavailable)
        session.add(catalog.get("usd-item"), 1)

        with pytest.raises(RuntimeError):
            session.begin_checkout()

        assert session.state == CheckoutState.CART
        assert session.session_config is None

        session.config_source = SessionConfig
        session.begin_checkout()
        assert session.state == CheckoutState.CHECKOUT

    def test_default_config_source(self, catalog, committer):
        session = CheckoutSession(catalog, committer)
        session.add(catalog.get("usd-item"), 1)
        session.begin_checkout()
        assert session.session_config == SessionConfig()


# =============================================================================
# LIFECYCLE
# =============================================================================


class TestLifecycle:
    """Тесты RESET и правок в checkout."""

    def test_begin_checkout_with_empty_cart(self, session):
        with pytest.raises(CheckoutStateError):
            session.begin_checkout()

    def test_edit_during_checkout_returns_to_cart(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()

        session.adjust_quantity("rebar-12", 1)

        assert session.state == CheckoutState.CART
        assert session.session_config is None

    def test_removing_last_line_returns_to_browsing(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        session.remove("rebar-12")
        assert session.state == CheckoutState.BROWSING

    def test_reset_clears_cart(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        session.begin_checkout()

        session.reset()

        assert session.state == CheckoutState.BROWSING
        assert session.cart.is_empty

    def test_failed_validation_does_not_change_state(self, session, catalog):
        session.add(catalog.get("rebar-12"), 10)
        with pytest.raises(StockError):
            session.add(catalog.get("rebar-12"), 100)
        assert session.state == CheckoutState.CART
        assert session.cart.find_line("rebar-12").resolved_quantity == 10

    def test_quote_does_not_touch_stock(self, session, catalog, committer):
        session.add(catalog.get("rebar-12"), 10)

        quote = session.quote(ProformaNumberSequence())

        assert quote.number.startswith("PF-")
        assert quote.final_total == pytest.approx(4500.0 * 1.1)
        assert catalog.get("rebar-12").current_stock == 50
        assert committer.submitted == []
        assert session.state == CheckoutState.CART

    def test_browse_reads_catalog(self, session):
        products = session.browse(["rebar-12", "missing"])
        assert [p.product_id for p in products] == ["rebar-12"]

    def test_validate_stock_preview(self, session, catalog):
        """Предварительная проверка остатков не меняет состояние."""
        session.add(catalog.get("rebar-12"), 10)
        catalog.set_stock("rebar-12", 3)

        result = session.validate_stock()

        assert not result.commit_allowed
        assert result.block_reason == "insufficient_stock"
        assert result.shortfalls[0].available == 3
        assert session.state == CheckoutState.CART
