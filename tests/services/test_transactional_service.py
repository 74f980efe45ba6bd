"""
Tests for the settlement transaction wrapper (TransactionalService._run_atomic).

Covers commit/rollback, translation of driver errors into kernel errors and
the started/completed/failed log lines.
"""

from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from inventory_kernel.exceptions import (
    ConcurrentSettlementError,
    DuplicateReportDateError,
    DuplicateSkuError,
    InsufficientStockError,
)
from inventory_kernel.logging_config import LogContext
from inventory_kernel.models import Item
from inventory_kernel.services import (
    DayEndReportService,
    PurchaseService,
    TransactionalService,
)
from inventory_kernel.services.base import is_contention_error
from tests.builders import report_input, sale


class _PgError(Exception):
    def __init__(self, message: str, pgcode: str):
        super().__init__(message)
        self.pgcode = pgcode


def _operational(orig: Exception) -> OperationalError:
    return OperationalError("UPDATE items SET ...", {}, orig)


def _new_item(sku: str, clock) -> Item:
    return Item(
        sku=sku,
        name=f"Item {sku}",
        mrp_price=Decimal("100"),
        purchase_cost_price=Decimal("80"),
        current_stock_units=0,
        created_at=clock.now(),
    )


def _item_count(session) -> int:
    return session.scalar(select(func.count()).select_from(Item))


class TestContentionDetection:

    @pytest.mark.parametrize(
        "orig",
        [
            Exception("database is locked"),
            Exception("ERROR: could not serialize access due to concurrent update"),
            Exception("deadlock detected"),
            _PgError("serialization failure", "40001"),
            _PgError("deadlock", "40P01"),
            _PgError("lock not available", "55P03"),
        ],
    )
    def test_contention(self, orig):
        assert is_contention_error(_operational(orig))

    def test_other_operational_errors(self):
        assert not is_contention_error(_operational(Exception("no such table: items")))
        assert not is_contention_error(_operational(_PgError("disk full", "53100")))


class TestRunAtomic:

    def test_commits_on_success(self, session, clock):
        service = TransactionalService(session, clock=clock)
        service._run_atomic("seed", lambda: session.add(_new_item("A", clock)))

        session.rollback()
        assert _item_count(session) == 1

    def test_caller_commits_when_auto_commit_off(self, session, clock):
        service = TransactionalService(session, clock=clock, auto_commit=False)
        service._run_atomic("seed", lambda: session.add(_new_item("A", clock)))

        session.rollback()
        assert _item_count(session) == 0

    def test_contention_becomes_concurrent_settlement_error(self, session, clock):
        service = TransactionalService(session, clock=clock)

        def body():
            session.add(_new_item("A", clock))
            session.flush()
            raise _operational(Exception("database is locked"))

        with pytest.raises(ConcurrentSettlementError) as exc_info:
            service._run_atomic("day_end_report_create", body)

        assert exc_info.value.retryable is True
        assert exc_info.value.http_status == 409
        assert exc_info.value.operation == "day_end_report_create"
        assert _item_count(session) == 0

    def test_other_operational_errors_propagate(self, session, clock):
        service = TransactionalService(session, clock=clock)

        def body():
            raise _operational(Exception("no such table: items"))

        with pytest.raises(OperationalError):
            service._run_atomic("seed", body)

    def test_untranslated_integrity_error_propagates(self, session, clock):
        service = TransactionalService(session, clock=clock)

        def body():
            session.add_all([_new_item("A", clock), _new_item("A", clock)])

        with pytest.raises(IntegrityError):
            service._run_atomic("seed", body)
        assert _item_count(session) == 0

    def test_duplicate_sku_translated(self, session, clock):
        service = PurchaseService(session, clock=clock)

        def body():
            session.add_all([_new_item("A", clock), _new_item("A", clock)])

        with pytest.raises(DuplicateSkuError):
            service._run_atomic("purchase_create", body)
        assert _item_count(session) == 0

    def test_duplicate_report_date_translated(self, session, clock):
        service = DayEndReportService(session, clock=clock)
        exc = IntegrityError(
            "INSERT INTO day_end_reports ...",
            {},
            Exception("UNIQUE constraint failed: day_end_reports.report_date"),
        )
        assert isinstance(service._translate_integrity_error(exc), DuplicateReportDateError)

    def test_unrelated_constraint_not_translated(self, session, clock):
        service = DayEndReportService(session, clock=clock)
        exc = IntegrityError("INSERT ...", {}, Exception("NOT NULL constraint failed: items.name"))
        assert service._translate_integrity_error(exc) is None


class TestSettlementLogging:

    def test_started_and_completed(self, session, clock, captured_logs):
        service = TransactionalService(session, clock=clock, actor_id="clerk-7")
        service._run_atomic("seed", lambda: None, batch="opening")

        records = captured_logs()
        started = next(r for r in records if r["message"] == "seed_started")
        completed = next(r for r in records if r["message"] == "seed_completed")
        assert started["batch"] == "opening"
        assert started["operation"] == "seed"
        assert started["actor_id"] == "clerk-7"
        assert started["correlation_id"] == completed["correlation_id"]
        assert "duration_ms" in completed

    def test_context_unbound_afterwards(self, session, clock):
        TransactionalService(session, clock=clock)._run_atomic("seed", lambda: None)
        assert LogContext.get_all() == {}

    def test_rejected_settlement_logged_as_warning(
        self, day_end_service, stocked_item, captured_logs
    ):
        with pytest.raises(InsufficientStockError):
            day_end_service.create_day_end_report(report_input(sale(50)))

        failed = next(
            r for r in captured_logs() if r["message"] == "day_end_report_create_failed"
        )
        assert failed["level"] == "WARNING"
        assert failed["error_code"] == "INSUFFICIENT_STOCK"
        assert failed["exc_code"] == "INSUFFICIENT_STOCK"
        assert failed["exc_action"] == "create"

    def test_unexpected_failure_logged_as_error(self, session, clock, captured_logs):
        service = TransactionalService(session, clock=clock)

        def body():
            raise _operational(Exception("no such table: items"))

        with pytest.raises(OperationalError):
            service._run_atomic("seed", body)

        failed = next(r for r in captured_logs() if r["message"] == "seed_failed")
        assert failed["level"] == "ERROR"
        assert failed["exc_type"] == "OperationalError"
