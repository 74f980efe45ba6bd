"""Tests for ItemSelector: lookups, low-stock alerts and valuation."""

from decimal import Decimal
from uuid import uuid4

from inventory_kernel.domain.dtos import ItemInfo
from tests.builders import purchase_input, purchase_line, report_input, sale


class TestLookup:

    def test_get_item(self, item_selector, stocked_item):
        info = item_selector.get_item(stocked_item.id)
        assert isinstance(info, ItemInfo)
        assert info.sku == "WHISKY-750"
        assert info.current_stock_units == 10

    def test_get_missing(self, item_selector):
        assert item_selector.get_item(uuid4()) is None
        assert item_selector.get_item_by_sku("NOPE") is None

    def test_get_by_sku(self, item_selector, stocked_item):
        assert item_selector.get_item_by_sku("WHISKY-750").id == stocked_item.id

    def test_list_excludes_inactive(self, session, item_selector, purchase_service, stocked_item):
        purchase_service.create_purchase(
            purchase_input(purchase_line(1, "50", "70", sku="GIN-750", name="Gin"))
        )
        stocked_item.is_active = False
        session.flush()

        assert [i.sku for i in item_selector.list_items()] == ["GIN-750"]
        assert [i.sku for i in item_selector.list_items(include_inactive=True)] == [
            "GIN-750",
            "WHISKY-750",
        ]


class TestLowStock:

    def test_store_threshold(self, item_selector, day_end_service, stocked_item):
        assert item_selector.list_low_stock() != []  # 10 units, threshold 10
        day_end_service.create_day_end_report(report_input(sale(1)))
        assert [i.sku for i in item_selector.list_low_stock(threshold=8)] == []

    def test_item_reorder_level_wins(self, session, item_selector, stocked_item):
        stocked_item.reorder_level = 12
        session.flush()
        assert [i.sku for i in item_selector.list_low_stock(threshold=2)] == ["WHISKY-750"]

    def test_saved_threshold_used(self, item_selector, settings_service, stocked_item):
        settings_service.update_settings(default_low_stock_threshold=5)
        assert item_selector.list_low_stock() == []

    def test_lowest_stock_first(self, item_selector, purchase_service, stocked_item):
        purchase_service.create_purchase(
            purchase_input(purchase_line(2, "50", "70", sku="GIN-750", name="Gin"))
        )
        assert [i.sku for i in item_selector.list_low_stock()] == ["GIN-750", "WHISKY-750"]


class TestInventoryValuation:

    def test_totals(self, item_selector, purchase_service, stocked_item):
        purchase_service.create_purchase(
            purchase_input(purchase_line(2, "50", "70", sku="GIN-750", name="Gin"))
        )
        valuation = item_selector.inventory_valuation()
        assert valuation.item_count == 2
        assert valuation.total_units == 12
        assert valuation.total_value == Decimal("900.0000")
        assert valuation.total_value_with_charges == Decimal("975.0000")

    def test_empty_store(self, item_selector):
        valuation = item_selector.inventory_valuation()
        assert valuation.item_count == 0
        assert valuation.total_value == Decimal("0")
