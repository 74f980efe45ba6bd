"""
BaseService and TransactionalService -- base classes for kernel services.

Responsibility:
    BaseService holds the session contract shared by every service:
    flush within the caller's transaction, never commit.  The ItemLedger
    and InventoryReconciliationService are plain BaseServices and always
    run inside a settlement.

    TransactionalService adds the settlement entry-point wrapper used by
    PurchaseService, DayEndReportService and SettingsService: each public
    write runs inside one all-or-nothing transaction, committed on success
    and rolled back on any failure, with started/completed/failed logs.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Atomicity: a settlement either commits every stock, valuation and
      document change it made or none of them.
    - Database contention (serialization failure, deadlock, SQLite "database
      is locked") surfaces as ConcurrentSettlementError, never as a raw
      driver error.

Failure modes:
    - Subclasses that call ``session.commit()`` inside a settlement body
      break atomicity.  Only ``_run_atomic`` commits.
"""

import time
from collections.abc import Callable
from typing import TypeVar
from uuid import uuid4

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import ConcurrentSettlementError, InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.base")

T = TypeVar("T")

# PostgreSQL SQLSTATEs that mean "another transaction got there first"
_RETRYABLE_PGCODES = frozenset({"40001", "40P01", "55P03"})
_RETRYABLE_MESSAGES = ("database is locked", "could not serialize", "deadlock detected")


def is_contention_error(exc: DBAPIError) -> bool:
    """True when a driver error means the transaction lost a race."""
    pgcode = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _RETRYABLE_MESSAGES)


class BaseService:
    """
    Base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide query-only methods; those belong in
          ``inventory_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session


class TransactionalService(BaseService):
    """
    Base class for services that own the transaction of their entry points.

    Args:
        session: SQLAlchemy session.  Must not have uncommitted work the
            caller wants to keep: a failed settlement rolls it back too.
        clock: Time source for created_at stamps.
        actor_id: Recorded as created_by and bound into the log context.
        auto_commit: When False the caller commits; the wrapper still rolls
            back on failure so no partial settlement stays in the session.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: str | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._actor_id = actor_id
        self._auto_commit = auto_commit

    def _translate_integrity_error(
        self, exc: IntegrityError
    ) -> InventoryKernelError | None:
        """Map a constraint violation to a domain error.  Subclasses override."""
        return None

    def _run_atomic(
        self,
        operation: str,
        body: Callable[[], T],
        *,
        purchase_id: str | None = None,
        report_id: str | None = None,
        **log_extra,
    ) -> T:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=self._actor_id,
            operation=operation,
            purchase_id=purchase_id,
            report_id=report_id,
        ):
            logger.info(f"{operation}_started", extra=log_extra)
            t0 = time.monotonic()
            try:
                try:
                    result = body()
                    self.session.flush()
                    if self._auto_commit:
                        self.session.commit()
                except IntegrityError as exc:
                    translated = self._translate_integrity_error(exc)
                    if translated is None:
                        raise
                    raise translated from exc
                except OperationalError as exc:
                    if not is_contention_error(exc):
                        raise
                    raise ConcurrentSettlementError(operation, str(exc.orig)) from exc
            except BaseException as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                self.session.rollback()
                if isinstance(exc, InventoryKernelError) and exc.http_status < 500:
                    logger.warning(
                        f"{operation}_failed",
                        extra={"duration_ms": duration_ms, "error_code": exc.code},
                        exc_info=True,
                    )
                else:
                    logger.error(
                        f"{operation}_failed",
                        extra={"duration_ms": duration_ms},
                        exc_info=True,
                    )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(f"{operation}_completed", extra={"duration_ms": duration_ms})
            return result
