"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- A fresh database schema per test (in-memory SQLite by default)
- Deterministic clock and settlement services bound to the test session
- A stocked item with purchase tax and charges on record
- Captured structured logs

Environment Variables:
- DATABASE_URL: SQLAlchemy URL of the test database.  Defaults to an
  in-memory SQLite database.  Point it at PostgreSQL (with the ``postgres``
  extra installed) to exercise row locking and REPEATABLE READ.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.models import Item
from inventory_kernel.selectors import ItemSelector, PurchaseHistorySelector
from inventory_kernel.services import (
    DayEndReportService,
    InventoryReconciliationService,
    PurchaseService,
    SettingsService,
)
from tests.builders import purchase_input, purchase_line

TEST_ACTOR_ID = "test-actor"

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, purchase_service):
            purchase_service.create_purchase(...)
            logs = captured_logs()
            assert any(r["message"] == "purchase_create_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_engine():
    """Engine with an empty schema, disposed after the test."""
    engine = init_engine_from_url(get_database_url(), echo=False)
    drop_tables()
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    s = get_session()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Services and selectors
# =============================================================================


@pytest.fixture
def purchase_service(session, clock) -> PurchaseService:
    return PurchaseService(session, clock=clock, actor_id=TEST_ACTOR_ID)


@pytest.fixture
def day_end_service(session, clock) -> DayEndReportService:
    return DayEndReportService(session, clock=clock, actor_id=TEST_ACTOR_ID)


@pytest.fixture
def settings_service(session, clock) -> SettingsService:
    return SettingsService(session, clock=clock, actor_id=TEST_ACTOR_ID)


@pytest.fixture
def reconciliation_service(session) -> InventoryReconciliationService:
    return InventoryReconciliationService(session)


@pytest.fixture
def item_selector(session) -> ItemSelector:
    return ItemSelector(session)


@pytest.fixture
def history_selector(session) -> PurchaseHistorySelector:
    return PurchaseHistorySelector(session)


# =============================================================================
# Seeded data
# =============================================================================


@pytest.fixture
def stocked_item(session, purchase_service, clock) -> Item:
    """
    10 units of WHISKY-750 bought at 80 (MRP 100) on 2024-01-01 with
    50 tax and 25 miscellaneous charges.
    """
    purchase_service.create_purchase(
        purchase_input(
            purchase_line(10, "80", "100"),
            tax_amount=Decimal("50"),
            miscellaneous_charges=Decimal("25"),
        )
    )
    clock.tick()
    return session.query(Item).filter_by(sku="WHISKY-750").one()
