"""Tests for inventory_kernel.logging_config."""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from inventory_config import get_default_settings
from inventory_kernel.domain.dtos import Shortage
from inventory_kernel.exceptions import InsufficientStockError, NegativeStockError
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def output():
    """Configure the kernel logger onto a buffer; returns a reader of JSON lines."""
    stream = StringIO()
    configure_logging(stream=stream, level=logging.DEBUG)

    def read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    return read


class TestRecordShape:

    def test_core_fields(self, output):
        get_logger("services.purchase").info("purchase_create_started")

        (record,) = output()
        assert record["level"] == "INFO"
        assert record["message"] == "purchase_create_started"
        assert record["logger"] == "inventory_kernel.services.purchase"
        assert record["ts"].endswith("+00:00")

    def test_extra_fields_and_value_types(self, output):
        report_id = uuid4()
        get_logger("test").info(
            "day_end_report_settled",
            extra={
                "report_id": report_id,
                "report_date": date(2024, 1, 2),
                "total_net_profit": Decimal("62.5000"),
                "total_units_sold": 5,
            },
        )

        (record,) = output()
        assert record["report_id"] == str(report_id)
        assert record["report_date"] == "2024-01-02"
        assert record["total_net_profit"] == "62.5000"
        assert record["total_units_sold"] == 5

    def test_context_wins_over_extra(self, output):
        LogContext.set(operation="purchase_update")
        get_logger("test").info("msg", extra={"operation": "something_else"})

        (record,) = output()
        assert record["operation"] == "purchase_update"

    def test_no_context_when_unset(self, output):
        get_logger("test").info("bare")

        (record,) = output()
        assert not {"correlation_id", "purchase_id", "report_id"} & set(record)

    def test_level_filtering(self):
        stream = StringIO()
        configure_logging(stream=stream)  # INFO
        logger = get_logger("test")
        logger.debug("hidden")
        logger.warning("shown")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["message"] == "shown"


class TestExceptionFields:

    def test_plain_exception(self, output):
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        (record,) = output()
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "exc_code" not in record
        assert "Traceback" in record["traceback"]

    def test_kernel_exception_attributes(self, output):
        try:
            raise NegativeStockError("Old Monk", 5, 3)
        except NegativeStockError:
            get_logger("test").warning("issue_refused", exc_info=True)

        (record,) = output()
        assert record["exc_code"] == "NEGATIVE_STOCK"
        assert record["exc_item_name"] == "Old Monk"
        assert record["exc_required"] == 5
        assert record["exc_available"] == 3

    def test_unserializable_attributes_fall_back_to_str(self, output):
        shortage = Shortage(item_id=uuid4(), item_name="Gin", required=4, available=1)
        try:
            raise InsufficientStockError("update", [shortage])
        except InsufficientStockError:
            get_logger("test").warning("rejected", exc_info=True)

        (record,) = output()
        assert record["exc_action"] == "update"
        assert len(record["exc_shortages"]) == 1
        assert "Gin" in record["exc_shortages"][0]


class TestLogContext:

    def test_set_get_clear(self):
        LogContext.set(correlation_id="x", report_id="r")
        assert LogContext.get_all() == {"correlation_id": "x", "report_id": "r"}
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_set_skips_none_and_unknown(self):
        LogContext.set(actor_id="clerk")
        LogContext.set(actor_id=None, till_number="3")
        assert LogContext.get_all() == {"actor_id": "clerk"}

    def test_bind_restores_previous_values(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", purchase_id="p"):
            assert LogContext.get_all() == {"correlation_id": "inner", "purchase_id": "p"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(operation="day_end_report_create"):
                raise RuntimeError("abort")
        assert LogContext.get_all() == {}

    def test_bound_fields_reach_records(self, output):
        with LogContext.bind(correlation_id="c-1", report_id="r-1"):
            get_logger("test").info("inside")
        get_logger("test").info("outside")

        inside, outside = output()
        assert inside["correlation_id"] == "c-1"
        assert inside["report_id"] == "r-1"
        assert "correlation_id" not in outside


class TestConfigureLogging:

    def test_first_call_wins(self):
        first, second = StringIO(), StringIO()
        configure_logging(stream=first)
        configure_logging(stream=second)
        get_logger("test").info("once")

        assert len(logging.getLogger("inventory_kernel").handlers) == 1
        assert "once" in first.getvalue()
        assert second.getvalue() == ""

    def test_custom_handler_gets_formatter(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        configure_logging(handler=handler)
        assert isinstance(handler.formatter, StructuredFormatter)

    def test_does_not_propagate(self, output):
        assert logging.getLogger("inventory_kernel").propagate is False

    def test_config_package_logs_under_kernel(self, output):
        get_default_settings()

        loaded = [r for r in output() if r["message"] == "default_settings_loaded"]
        assert loaded[0]["logger"] == "inventory_kernel.config"
