"""
PurchaseService -- purchase settlement (stock inflow).

Responsibility:
    Creates, rewrites and deletes purchases, applying or reversing their
    effect on item stock and cost in the same transaction:

        create_purchase   header -> per line: resolve item, allocate charges,
                          write line, lock item, receive stock, blend averages
        update_purchase   reverse old lines -> delete them -> rewrite header ->
                          recreate lines as in create -> reconcile touched items
        delete_purchase   reverse lines -> delete purchase -> reconcile items

Architecture position:
    Kernel > Services.  Settlement entry point: owns commit/rollback through
    TransactionalService._run_atomic.

Invariants enforced:
    - Atomic settlement: all line, stock and valuation changes commit
      together or not at all.
    - Pricing precedence: an item's purchase cost and MRP only move forward
      in purchase-date order; back-dated purchases change stock and
      average cost but not the "latest" prices.
    - Stock conservation: after update/delete, item stock is rebuilt from
      the full purchase, sales and adjustment history.
    - No oversold history: a rewrite or delete that would leave an item
      with fewer units than its sales already took out is refused.

Failure modes:
    - EmptyLineItemsError: no lines.
    - ItemNotFoundError: explicit item_id unknown, or creation disallowed.
    - MissingItemDetailsError: new item without a name.
    - DuplicateSkuError: derived SKU already taken.
    - PurchaseNotFoundError: update/delete of a missing purchase.
    - NegativeStockError: update/delete would take back units already sold.
    - ConcurrentSettlementError: lost a race with another settlement.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import (
    PurchaseInfo,
    PurchaseInput,
    PurchaseLineInput,
    PurchaseResult,
    PurchaseTotals,
)
from inventory_kernel.domain.purchasing import (
    allocate_line_charges,
    compute_case_stats,
    derive_sku,
    mrp_signalled,
)
from inventory_kernel.exceptions import (
    DuplicateSkuError,
    EmptyLineItemsError,
    InventoryKernelError,
    ItemNotFoundError,
    MissingItemDetailsError,
    NegativeStockError,
    PurchaseNotFoundError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import Item, Purchase, PurchaseLineItem
from inventory_kernel.selectors.purchase_history_selector import PurchaseHistorySelector
from inventory_kernel.services.base import TransactionalService
from inventory_kernel.services.item_ledger import ItemLedger
from inventory_kernel.services.reconciliation_service import (
    InventoryReconciliationService,
)

logger = get_logger("services.purchase")


class PurchaseService(TransactionalService):
    """
    Purchase settlement.

    Usage:
        service = PurchaseService(session, clock=clock)
        result = service.create_purchase(purchase_input)
        result.totals.total_quantity
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: str | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock=clock, actor_id=actor_id, auto_commit=auto_commit)
        self._ledger = ItemLedger(session)
        self._reconciliation = InventoryReconciliationService(session, self._ledger)
        self._history = PurchaseHistorySelector(session)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def create_purchase(self, purchase_input: PurchaseInput) -> PurchaseResult:
        """Record a purchase and receive its stock."""
        self._require_lines(purchase_input)

        def body() -> PurchaseResult:
            purchase = Purchase(
                created_at=self._clock.now(),
                created_by=self._actor_id,
            )
            self._write_header(purchase, purchase_input)
            self.session.add(purchase)
            self.session.flush()

            totals, _ = self._settle_lines(purchase, purchase_input)
            return self._result(purchase, totals)

        return self._run_atomic(
            "purchase_create",
            body,
            purchase_date=purchase_input.purchase_date,
            line_count=len(purchase_input.line_items),
        )

    def update_purchase(
        self, purchase_id: UUID, purchase_input: PurchaseInput
    ) -> PurchaseResult:
        """Replace a purchase's header and lines, then rebuild affected items."""
        self._require_lines(purchase_input)

        def body() -> PurchaseResult:
            purchase = self._get_purchase(purchase_id)
            opening_stock = self._reverse_lines(purchase)

            purchase.line_items.clear()
            self.session.flush()

            self._write_header(purchase, purchase_input)
            totals, touched = self._settle_lines(purchase, purchase_input)

            self.session.flush()
            self._reconciliation.refresh_item_inventory_stats([*opening_stock, *touched])
            self._require_stock_covers_sales(opening_stock)
            return self._result(purchase, totals)

        return self._run_atomic(
            "purchase_update",
            body,
            purchase_id=str(purchase_id),
            purchase_date=purchase_input.purchase_date,
            line_count=len(purchase_input.line_items),
        )

    def delete_purchase(self, purchase_id: UUID) -> None:
        """Delete a purchase and take its stock back out."""

        def body() -> None:
            purchase = self._get_purchase(purchase_id)
            opening_stock = self._reverse_lines(purchase)
            self.session.delete(purchase)
            self.session.flush()
            self._reconciliation.refresh_item_inventory_stats(opening_stock)
            self._require_stock_covers_sales(opening_stock)

        self._run_atomic("purchase_delete", body, purchase_id=str(purchase_id))

    # ------------------------------------------------------------------
    # Item resolution
    # ------------------------------------------------------------------

    def resolve_item(self, line: PurchaseLineInput, allow_creation: bool) -> Item:
        """
        Find the line's item, creating it when permitted.

        Lookup order: item_id, sku, (brand_number, size_code[, pack_type]).

        Raises:
            ItemNotFoundError: item_id unknown, or not found and creation
                disallowed.
            MissingItemDetailsError: creation needs a name.
            DuplicateSkuError: the derived SKU belongs to another item.
        """
        if line.item_id is not None:
            item = self.session.get(Item, line.item_id)
            if item is None:
                raise ItemNotFoundError(line.item_id)
            return item

        if line.sku:
            item = self.session.scalars(select(Item).where(Item.sku == line.sku)).first()
            if item is not None:
                return item
            if not allow_creation:
                raise ItemNotFoundError(line.sku, "item creation is disabled")

        if line.brand_number and line.size_code:
            stmt = select(Item).where(
                Item.brand_number == line.brand_number,
                Item.size_code == line.size_code,
            )
            if line.pack_type:
                stmt = stmt.where(Item.pack_type == line.pack_type)
            item = self.session.scalars(stmt.order_by(Item.created_at)).first()
            if item is not None:
                return item

        if not allow_creation:
            raise ItemNotFoundError(
                line.sku or line.brand_number or line.name,
                "item creation is disabled",
            )

        return self._create_item(line)

    def _create_item(self, line: PurchaseLineInput) -> Item:
        if not line.name:
            raise MissingItemDetailsError(line.sku)

        sku = derive_sku(line)
        taken = self.session.scalars(select(Item.id).where(Item.sku == sku)).first()
        if taken is not None:
            raise DuplicateSkuError(sku)

        item = Item(
            sku=sku,
            name=line.name,
            brand=line.brand,
            brand_number=line.brand_number,
            product_type=line.product_type,
            size_code=line.size_code,
            pack_type=line.pack_type,
            units_per_pack=line.units_per_pack,
            pack_size_label=line.pack_size_label,
            category=line.category,
            volume_ml=line.volume_ml,
            mrp_price=line.mrp_price,
            purchase_cost_price=line.unit_cost_price,
            current_stock_units=0,
            reorder_level=line.reorder_level,
            is_active=True if line.is_active is None else line.is_active,
            created_at=self._clock.now(),
            created_by=self._actor_id,
        )
        self.session.add(item)
        self.session.flush()
        logger.info("item_created", extra={"item_id": str(item.id), "sku": sku})
        return item

    def should_update_item_pricing(self, item_id: UUID, purchase_date: date) -> bool:
        """True when no purchase of the item is dated after ``purchase_date``."""
        latest = self._history.latest_purchase_date(item_id)
        return latest is None or purchase_date >= latest

    # ------------------------------------------------------------------
    # Settlement steps
    # ------------------------------------------------------------------

    @staticmethod
    def _require_lines(purchase_input: PurchaseInput) -> None:
        if not purchase_input.line_items:
            logger.warning("purchase_rejected_empty")
            raise EmptyLineItemsError("purchase")

    def _get_purchase(self, purchase_id: UUID) -> Purchase:
        purchase = self.session.get(Purchase, purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        return purchase

    @staticmethod
    def _write_header(purchase: Purchase, purchase_input: PurchaseInput) -> None:
        purchase.purchase_date = purchase_input.purchase_date
        purchase.supplier_name = purchase_input.supplier_name
        purchase.notes = purchase_input.notes
        purchase.tax_amount = purchase_input.tax_amount
        purchase.miscellaneous_charges = purchase_input.miscellaneous_charges

    def _reverse_lines(self, purchase: Purchase) -> dict[UUID, int]:
        """
        Take every line's units back out of stock.

        Returns each touched item's stock from before the reversal, in
        first-seen order.
        """
        opening_stock: dict[UUID, int] = {}
        for line in purchase.line_items:
            item = self._ledger.lock_item(line.item_id)
            opening_stock.setdefault(item.id, item.current_stock_units)
            self._ledger.reverse_receipt(item, line.quantity_units)
        return opening_stock

    def _require_stock_covers_sales(self, opening_stock: dict[UUID, int]) -> None:
        """
        Refuse a rewrite or delete that takes back units already sold.

        Runs after reconciliation, so the stock checked is the rebuilt one.
        An item that was already negative (through external adjustments)
        may stay negative as long as this settlement does not lower it.

        Raises:
            NegativeStockError: an item would end below zero.
        """
        for item_id, opening in opening_stock.items():
            item = self._ledger.lock_item(item_id)
            closing = item.current_stock_units
            if closing < 0 and closing < opening:
                logger.warning(
                    "purchase_reversal_exceeds_stock",
                    extra={
                        "item_id": str(item_id),
                        "opening_stock": opening,
                        "closing_stock": closing,
                    },
                )
                raise NegativeStockError(item.name, opening - closing, opening)

    def _settle_lines(
        self,
        purchase: Purchase,
        purchase_input: PurchaseInput,
    ) -> tuple[PurchaseTotals, list[UUID]]:
        total_base_value = purchase_input.total_base_value
        pricing_cache: dict[UUID, bool] = {}
        touched: list[UUID] = []
        total_quantity = 0

        for line_number, line in enumerate(purchase_input.line_items, start=1):
            item = self.resolve_item(line, purchase_input.allow_item_creation)

            update_pricing = pricing_cache.get(item.id)
            if update_pricing is None:
                update_pricing = self.should_update_item_pricing(
                    item.id, purchase_input.purchase_date
                )
                pricing_cache[item.id] = update_pricing

            case_stats = compute_case_stats(line)
            charges = allocate_line_charges(
                line,
                total_base_value,
                purchase_input.tax_amount,
                purchase_input.miscellaneous_charges,
            )

            purchase.line_items.append(
                PurchaseLineItem(
                    item_id=item.id,
                    line_number=line_number,
                    quantity_units=line.quantity_units,
                    cases_quantity=case_stats.cases_quantity,
                    units_per_case=case_stats.units_per_case,
                    pack_type=line.pack_type,
                    pack_size_label=line.pack_size_label,
                    brand_number=line.brand_number,
                    product_type=line.product_type,
                    size_code=line.size_code,
                    unit_cost_price=line.unit_cost_price,
                    case_cost_price=case_stats.case_cost_price,
                    line_total_price=case_stats.line_total_price,
                    mrp_price_at_purchase=line.mrp_price,
                    allocated_tax_amount=charges.allocated_tax_or_none,
                    allocated_misc_charges=charges.allocated_misc_or_none,
                    line_total_cost_with_charges=charges.line_total_cost_with_charges,
                    unit_total_cost_price=charges.unit_total_cost_price,
                    created_at=self._clock.now(),
                    created_by=self._actor_id,
                )
            )

            item = self._ledger.lock_item(item.id)
            self._ledger.receive(
                item,
                line.quantity_units,
                line.unit_cost_price,
                charges.unit_total_cost_price,
            )
            self._ledger.apply_metadata(item, line)
            if update_pricing:
                self._ledger.apply_latest_pricing(
                    item,
                    line.unit_cost_price,
                    line.mrp_price if mrp_signalled(line) else None,
                )

            touched.append(item.id)
            total_quantity += line.quantity_units

        self.session.flush()
        totals = PurchaseTotals(
            total_quantity=total_quantity,
            line_count=len(purchase_input.line_items),
        )
        return totals, touched

    def _result(self, purchase: Purchase, totals: PurchaseTotals) -> PurchaseResult:
        return PurchaseResult(purchase=PurchaseInfo.from_model(purchase), totals=totals)

    def _translate_integrity_error(
        self, exc: IntegrityError
    ) -> InventoryKernelError | None:
        message = str(exc.orig).lower()
        if "uq_item_sku" in message or "items.sku" in message:
            return DuplicateSkuError("(inserted concurrently)")
        return None
