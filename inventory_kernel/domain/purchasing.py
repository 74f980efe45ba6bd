"""
Purchase line arithmetic: case statistics, SKU derivation and allocation of
purchase-level charges to lines.  Pure functions, no I/O.
"""

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from inventory_kernel.db.types import ZERO, normalize_money, positive_or_none
from inventory_kernel.domain.dtos import PurchaseLineInput

# Minimum difference between MRP and unit cost for the MRP to count as given.
# Import files that carry no MRP column repeat the unit cost in its place.
MRP_SIGNAL_TOLERANCE = Decimal("0.01")

_SKU_NAME_MAX_LENGTH = 20
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_WHITESPACE = re.compile(r"\s+")


def _round_units(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class CaseStats:
    units_per_case: int | None
    cases_quantity: int | None
    case_cost_price: Decimal | None
    line_total_price: Decimal | None


def compute_case_stats(line: PurchaseLineInput) -> CaseStats:
    """
    Fill in the case-level figures a supplier invoice may leave out.

    Each figure is taken from the line when given, else derived from the
    others: units per case from the pack size or quantity / cases, cases from
    quantity / units per case, case cost from unit cost, line total from case
    cost times cases.
    """
    units_per_case = line.units_per_pack
    if units_per_case is None and line.cases_quantity:
        units_per_case = _round_units(Decimal(line.quantity_units) / line.cases_quantity)

    cases_quantity = line.cases_quantity
    if cases_quantity is None and units_per_case:
        cases_quantity = _round_units(Decimal(line.quantity_units) / units_per_case)

    case_cost_price = line.case_cost_price
    if case_cost_price is None and units_per_case:
        case_cost_price = normalize_money(line.unit_cost_price * units_per_case)

    line_total_price = line.line_total_price
    if line_total_price is None and case_cost_price is not None and cases_quantity is not None:
        line_total_price = normalize_money(case_cost_price * cases_quantity)

    return CaseStats(
        units_per_case=units_per_case,
        cases_quantity=cases_quantity,
        case_cost_price=case_cost_price,
        line_total_price=line_total_price,
    )


def derive_sku(line: PurchaseLineInput) -> str | None:
    """
    SKU for an item created from a purchase line.

    Order: explicit sku; brand number, size code and pack type joined by "-"
    (at least two present, whitespace removed, upper-cased); brand number and
    volume; the upper-cased name with non-alphanumerics replaced by "-".
    Returns None when nothing identifies the item.
    """
    if line.sku:
        return line.sku

    parts = [
        _WHITESPACE.sub("", part).upper()
        for part in (line.brand_number, line.size_code, line.pack_type)
        if part
    ]
    if len(parts) >= 2:
        return "-".join(parts)

    if line.brand_number and line.volume_ml:
        return f"{line.brand_number}-{line.volume_ml}"

    if line.name:
        return _NON_ALNUM.sub("-", line.name.upper())[:_SKU_NAME_MAX_LENGTH]

    return None


@dataclass(frozen=True)
class LineChargeAllocation:
    """A line's share of the purchase tax and miscellaneous charges."""

    ratio: Decimal
    allocated_tax: Decimal
    allocated_misc: Decimal
    line_total_cost_with_charges: Decimal
    unit_total_cost_price: Decimal

    @property
    def allocated_tax_or_none(self) -> Decimal | None:
        return positive_or_none(self.allocated_tax)

    @property
    def allocated_misc_or_none(self) -> Decimal | None:
        return positive_or_none(self.allocated_misc)


def allocate_line_charges(
    line: PurchaseLineInput,
    total_base_value: Decimal,
    tax_amount: Decimal | None,
    miscellaneous_charges: Decimal | None,
) -> LineChargeAllocation:
    """
    Allocate purchase-level charges to a line by its share of base value.

    A purchase whose lines all cost zero allocates nothing.
    """
    line_base = line.base_value
    ratio = line_base / total_base_value if total_base_value > ZERO else ZERO
    allocated_tax = normalize_money((tax_amount or ZERO) * ratio)
    allocated_misc = normalize_money((miscellaneous_charges or ZERO) * ratio)
    line_total = normalize_money(line_base + allocated_tax + allocated_misc)
    return LineChargeAllocation(
        ratio=ratio,
        allocated_tax=allocated_tax,
        allocated_misc=allocated_misc,
        line_total_cost_with_charges=line_total,
        unit_total_cost_price=normalize_money(line_total / line.quantity_units),
    )


def mrp_signalled(line: PurchaseLineInput) -> bool:
    """True when the line's MRP is a real retail price, not a copy of its cost."""
    return abs(line.mrp_price - line.unit_cost_price) > MRP_SIGNAL_TOLERANCE
