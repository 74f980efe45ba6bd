"""Unit tests for weighted-average valuation arithmetic."""

from decimal import Decimal

from inventory_kernel.domain.valuation import (
    blend_weighted_average,
    opening_value,
    rebuild_weighted_average,
    stock_value,
)

D = Decimal


class TestOpeningValue:

    def test_stored_value_wins(self):
        assert opening_value(D("800"), 10, D("70"), D("60")) == D("800")

    def test_average_when_no_stored_value(self):
        assert opening_value(None, 10, D("70"), D("60")) == D("700")

    def test_zero_stored_value_falls_back(self):
        assert opening_value(D("0"), 10, None, D("60")) == D("600")

    def test_nothing_known(self):
        assert opening_value(None, 0, None, None) == D("0")


class TestBlendWeightedAverage:

    def test_first_receipt(self):
        blended = blend_weighted_average(0, D("0"), 10, D("80"))
        assert blended.average == D("80.0000")
        assert blended.total_value == D("800.0000")

    def test_second_receipt(self):
        """10 units valued 800 plus 5 at 90 is 83.3333 per unit."""
        blended = blend_weighted_average(10, D("800"), 5, D("90"))
        assert blended.average == D("83.3333")
        assert blended.total_value == D("1249.9995")

    def test_free_goods_have_no_average(self):
        blended = blend_weighted_average(0, D("0"), 10, D("0"))
        assert blended.average is None
        assert blended.total_value is None

    def test_negative_opening_stock(self):
        """Stock driven below zero by a purchase edit still yields a sane average."""
        blended = blend_weighted_average(-5, D("0"), 5, D("90"))
        assert blended.average == D("90.0000")
        assert blended.total_value is None


class TestRebuildWeightedAverage:

    def test_matches_incremental_blend(self):
        rebuilt = rebuild_weighted_average(
            [(D("80"), None, 10), (D("90"), None, 5)], stock=15
        )
        assert rebuilt.average == D("83.3333")
        assert rebuilt.total_value == D("1249.9995")

    def test_with_charges(self):
        rebuilt = rebuild_weighted_average(
            [(D("80"), D("87.5"), 10), (D("90"), D("90"), 10)], stock=20
        )
        assert rebuilt.average == D("85.0000")
        assert rebuilt.average_with_charges == D("88.7500")
        assert rebuilt.total_value_with_charges == D("1775.0000")

    def test_missing_charge_cost_uses_base(self):
        rebuilt = rebuild_weighted_average([(D("80"), None, 4)], stock=4)
        assert rebuilt.average_with_charges == D("80.0000")

    def test_value_uses_stock_not_receipts(self):
        rebuilt = rebuild_weighted_average([(D("80"), None, 10)], stock=3)
        assert rebuilt.average == D("80.0000")
        assert rebuilt.total_value == D("240.0000")

    def test_negative_stock_valued_at_none(self):
        rebuilt = rebuild_weighted_average([(D("80"), None, 10)], stock=-2)
        assert rebuilt.average == D("80.0000")
        assert rebuilt.total_value is None

    def test_no_receipts(self):
        rebuilt = rebuild_weighted_average([], stock=0)
        assert rebuilt.average is None
        assert rebuilt.average_with_charges is None
        assert rebuilt.total_value is None


class TestStockValue:

    def test_value(self):
        assert stock_value(D("83.3333"), 10) == D("833.3330")

    def test_no_average(self):
        assert stock_value(None, 10) is None

    def test_empty(self):
        assert stock_value(D("80"), 0) is None
