"""Tests for ItemLedger, the single writer of item stock and valuation."""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import ItemNotFoundError, NegativeStockError
from inventory_kernel.services import ItemLedger
from tests.builders import purchase_line


@pytest.fixture
def ledger(session) -> ItemLedger:
    return ItemLedger(session)


class TestLockItem:

    def test_returns_session_item(self, ledger, stocked_item):
        assert ledger.lock_item(stocked_item.id) is stocked_item

    def test_unknown(self, ledger):
        with pytest.raises(ItemNotFoundError):
            ledger.lock_item(uuid4())


class TestIssueAndRelease:

    def test_issue_revalues_remaining_stock(self, ledger, stocked_item):
        ledger.issue(stocked_item, 4)
        assert stocked_item.current_stock_units == 6
        assert stocked_item.total_inventory_value == Decimal("480.0000")
        assert stocked_item.total_inventory_value_with_charges == Decimal("525.0000")

    def test_issue_everything(self, ledger, stocked_item):
        ledger.issue(stocked_item, 10)
        assert stocked_item.current_stock_units == 0
        assert stocked_item.total_inventory_value is None
        assert stocked_item.weighted_avg_cost_price == Decimal("80.0000")

    def test_issue_beyond_stock(self, ledger, stocked_item):
        with pytest.raises(NegativeStockError) as exc_info:
            ledger.issue(stocked_item, 11)
        assert str(exc_info.value) == (
            "Insufficient stock for Test Whisky 750ml: need 11, only 10 available"
        )
        assert stocked_item.current_stock_units == 10

    def test_release(self, ledger, stocked_item):
        ledger.issue(stocked_item, 4)
        ledger.release(stocked_item, 4)
        assert stocked_item.current_stock_units == 10
        assert stocked_item.total_inventory_value == Decimal("800.0000")


class TestReceive:

    def test_opening_value_from_average_when_not_stored(self, ledger, stocked_item):
        stocked_item.total_inventory_value = None
        ledger.receive(stocked_item, 10, Decimal("100"), Decimal("100"))
        # 10 on hand valued at the 80 average
        assert stocked_item.weighted_avg_cost_price == Decimal("90.0000")
        assert stocked_item.current_stock_units == 20

    def test_reverse_receipt_only_moves_stock(self, ledger, stocked_item):
        ledger.reverse_receipt(stocked_item, 3)
        assert stocked_item.current_stock_units == 7
        assert stocked_item.weighted_avg_cost_price == Decimal("80.0000")


class TestItemFields:

    def test_latest_pricing_without_mrp(self, ledger, stocked_item):
        ledger.apply_latest_pricing(stocked_item, Decimal("85"), None)
        assert stocked_item.purchase_cost_price == Decimal("85")
        assert stocked_item.mrp_price == Decimal("100.0000")

    def test_metadata_skips_missing_fields(self, ledger, stocked_item):
        stocked_item.category = "Whisky"
        ledger.apply_metadata(stocked_item, purchase_line(1, brand="Highland Co"))
        assert stocked_item.brand == "Highland Co"
        assert stocked_item.category == "Whisky"

    def test_metadata_can_deactivate(self, ledger, stocked_item):
        ledger.apply_metadata(stocked_item, purchase_line(1, is_active=False))
        assert stocked_item.is_active is False
