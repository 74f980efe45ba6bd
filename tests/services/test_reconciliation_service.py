"""
Tests for InventoryReconciliationService.

Reconciliation rebuilds stock and valuation from the full history, so after
any mix of settlements it must agree with what the ItemLedger maintained
incrementally.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.exceptions import ItemNotFoundError
from inventory_kernel.models import StockAdjustment
from tests.builders import purchase_input, purchase_line, report_input, sale


class TestRefreshItemInventoryStats:

    def test_agrees_with_incremental_settlement(
        self, purchase_service, day_end_service, reconciliation_service, stocked_item
    ):
        purchase_service.create_purchase(
            purchase_input(purchase_line(5, "90", "120"), purchase_date="2024-01-03")
        )
        day_end_service.create_day_end_report(report_input(sale(6)))
        before = (
            stocked_item.current_stock_units,
            stocked_item.weighted_avg_cost_price,
            stocked_item.purchase_cost_price,
            stocked_item.mrp_price,
        )

        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])

        after = (
            stocked_item.current_stock_units,
            stocked_item.weighted_avg_cost_price,
            stocked_item.purchase_cost_price,
            stocked_item.mrp_price,
        )
        assert after == before
        assert stocked_item.current_stock_units == 9
        assert stocked_item.total_inventory_value == Decimal("749.9997")

    def test_repairs_drifted_stock(self, session, reconciliation_service, stocked_item, captured_logs):
        stocked_item.current_stock_units = 999
        stocked_item.weighted_avg_cost_price = Decimal("1")
        session.flush()

        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])

        assert stocked_item.current_stock_units == 10
        assert stocked_item.weighted_avg_cost_price == Decimal("80.0000")
        assert stocked_item.weighted_avg_total_cost_price == Decimal("87.5000")
        assert stocked_item.total_inventory_value == Decimal("800.0000")

        reconciled = [r for r in captured_logs() if r["message"] == "item_stock_reconciled"]
        assert reconciled[0]["previous_stock"] == 999
        assert reconciled[0]["stock"] == 10

    def test_includes_adjustments(self, session, reconciliation_service, stocked_item, clock):
        session.add_all(
            [
                StockAdjustment(
                    item_id=stocked_item.id,
                    adjustment_units=-2,
                    reason="breakage",
                    created_at=clock.now(),
                ),
                StockAdjustment(
                    item_id=stocked_item.id,
                    adjustment_units=5,
                    reason="opening count",
                    created_at=clock.now(),
                ),
            ]
        )
        session.flush()

        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])

        assert stocked_item.current_stock_units == 13
        assert stocked_item.total_inventory_value == Decimal("1040.0000")

    def test_idempotent(self, reconciliation_service, stocked_item):
        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])
        first = (stocked_item.current_stock_units, stocked_item.total_inventory_value)
        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])
        assert (stocked_item.current_stock_units, stocked_item.total_inventory_value) == first

    def test_duplicate_ids_processed_once(self, reconciliation_service, stocked_item, captured_logs):
        reconciliation_service.refresh_item_inventory_stats([stocked_item.id] * 3)
        refreshed = [
            r for r in captured_logs() if r["message"] == "item_inventory_stats_refreshed"
        ]
        assert len(refreshed) == 1

    def test_unknown_item(self, reconciliation_service):
        with pytest.raises(ItemNotFoundError):
            reconciliation_service.refresh_item_inventory_stats([uuid4()])

    def test_flush_only(self, session, reconciliation_service, stocked_item):
        stocked_item.current_stock_units = 999
        session.commit()

        reconciliation_service.refresh_item_inventory_stats([stocked_item.id])
        assert stocked_item.current_stock_units == 10

        session.rollback()
        assert stocked_item.current_stock_units == 999
