"""
Weighted-average valuation arithmetic.

Pure functions over Decimal.  Two ways of arriving at an item's average:

    blend_weighted_average   incremental, one receipt at a time (purchase create)
    rebuild_weighted_average from the full purchase history (reconciliation)

Both round the average to money precision before multiplying it by stock, so
the stored inventory value is always ``average * stock`` exactly.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from inventory_kernel.db.types import ZERO, normalize_money, positive_or_none


@dataclass(frozen=True)
class BlendedCost:
    average: Decimal | None
    total_value: Decimal | None


def opening_value(
    stored_value: Decimal | None,
    stock: int,
    average: Decimal | None,
    fallback_cost: Decimal | None,
) -> Decimal:
    """
    Value of the stock on hand before a receipt.

    The stored inventory value wins when it is non-zero; otherwise the stock
    is valued at the average (or the last purchase cost, or zero).
    """
    if stored_value:
        return stored_value
    unit_cost = average or fallback_cost or ZERO
    return unit_cost * stock


def blend_weighted_average(
    old_stock: int,
    old_value: Decimal,
    quantity: int,
    unit_cost: Decimal,
) -> BlendedCost:
    """
    Blend a receipt of ``quantity`` units at ``unit_cost`` into the average.

    Example:
        10 units valued 800 plus 5 units at 90 gives (800 + 450) / 15 = 83.3333.
    """
    new_stock = old_stock + quantity
    if new_stock > 0:
        average = normalize_money((old_value + unit_cost * quantity) / new_stock)
    else:
        average = normalize_money(unit_cost)
    return BlendedCost(
        average=positive_or_none(average),
        total_value=positive_or_none(average * max(new_stock, 0)),
    )


@dataclass(frozen=True)
class RebuiltCost:
    average: Decimal | None
    average_with_charges: Decimal | None
    total_value: Decimal | None
    total_value_with_charges: Decimal | None


def rebuild_weighted_average(
    receipts: Iterable[tuple[Decimal, Decimal | None, int]],
    stock: int,
) -> RebuiltCost:
    """
    Recompute both averages from every receipt of an item.

    Args:
        receipts: (unit_cost, unit_total_cost or None, quantity) per purchase
            line.  Lines without a with-charges cost contribute their base cost
            to the with-charges average.
        stock: Reconciled stock on hand; negative stock is valued at zero.
    """
    total_units = 0
    total_value = ZERO
    total_value_with_charges = ZERO
    for unit_cost, unit_total_cost, quantity in receipts:
        base = unit_cost * quantity
        total_value += base
        total_value_with_charges += (
            unit_total_cost * quantity if unit_total_cost else base
        )
        total_units += quantity

    if total_units > 0:
        average = normalize_money(total_value / total_units)
        average_with_charges = normalize_money(total_value_with_charges / total_units)
    else:
        average = ZERO
        average_with_charges = ZERO

    on_hand = max(stock, 0)
    return RebuiltCost(
        average=positive_or_none(average),
        average_with_charges=positive_or_none(average_with_charges),
        total_value=positive_or_none(average * on_hand),
        total_value_with_charges=positive_or_none(average_with_charges * on_hand),
    )


def stock_value(average: Decimal | None, stock: int) -> Decimal | None:
    """Inventory value after a stock movement that does not change the average."""
    return positive_or_none((average or ZERO) * stock)
