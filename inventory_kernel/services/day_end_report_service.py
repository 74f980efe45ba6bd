"""
DayEndReportService -- day-end sales settlement (stock outflow).

Responsibility:
    Previews, creates, rewrites and deletes day-end sales reports.  A report
    turns the day's sales lines into revenue, cost and profit, charges a
    proportional share of historical purchase tax/misc against its net
    profit, and takes the sold units out of stock.

Lifecycle:
    none -> previewed -> committed -> (edited -> committed) | deleted

    Preview is read-only.  Commit, edit and delete are each one atomic
    settlement.

Architecture position:
    Kernel > Services.  Settlement entry point: owns commit/rollback through
    TransactionalService._run_atomic.

Invariants enforced:
    - One report per business date (checked here, enforced by a UNIQUE
      constraint for concurrent creates).
    - No sale without stock: every shortage is collected and reported in
      one InsufficientStockError before anything is written; the ItemLedger
      re-checks each item under its row lock while decrementing.
    - Editing a report first returns its units to stock, so the new line
      set is checked against stock as if the old report had never settled.

Failure modes:
    - EmptyLineItemsError: no lines.
    - UnknownItemError: a line matches no item.
    - InsufficientStockError: one or more items short.
    - NegativeStockError: final per-item safeguard.
    - DuplicateReportDateError: another report holds the date.
    - ReportNotFoundError: update/delete of a missing report.
    - ConcurrentSettlementError: lost a race with another settlement.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.db.types import normalize_money
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.dtos import (
    DayEndLineInput,
    DayEndPreview,
    DayEndReportInfo,
    DayEndReportInput,
    DayEndReportResult,
    ItemDemand,
    PreparedLine,
    PreparedSales,
)
from inventory_kernel.domain.sales import (
    allocate_net_profit,
    find_shortages,
    line_net_profit,
    price_line,
    summarize,
)
from inventory_kernel.exceptions import (
    DuplicateReportDateError,
    EmptyLineItemsError,
    InsufficientStockError,
    InventoryKernelError,
    ReportNotFoundError,
    UnknownItemError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models import DayEndReport, DayEndReportLine, Item
from inventory_kernel.selectors.purchase_history_selector import PurchaseHistorySelector
from inventory_kernel.selectors.settings_selector import SettingsSelector
from inventory_kernel.services.base import TransactionalService
from inventory_kernel.services.item_ledger import ItemLedger

logger = get_logger("services.day_end_report")


class DayEndReportService(TransactionalService):
    """
    Day-end sales settlement.

    Usage:
        service = DayEndReportService(session, clock=clock)
        preview = service.preview_day_end_report(report_input)
        if preview.can_commit:
            service.create_day_end_report(report_input)
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
        self._history = PurchaseHistorySelector(session)
        self._settings = SettingsSelector(session)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def preview_day_end_report(
        self,
        report_input: DayEndReportInput,
        editing_report_id: UUID | None = None,
    ) -> DayEndPreview:
        """
        Price the lines and list shortages without changing anything.

        With ``editing_report_id`` the units already sold on that report
        count as available, as they would be after the edit reverses it.
        """
        self._require_lines(report_input)
        belt_markup = self.resolve_belt_markup(report_input)

        restored: dict[UUID, int] | None = None
        if editing_report_id is not None:
            existing = self.session.get(DayEndReport, editing_report_id)
            if existing is not None:
                restored = self._units_by_item(existing)

        prepared = self.prepare_lines(report_input, belt_markup, restored)
        return DayEndPreview(
            summary=summarize(prepared.lines),
            shortages=prepared.shortages,
            belt_markup_rupees=belt_markup,
        )

    def create_day_end_report(self, report_input: DayEndReportInput) -> DayEndReportResult:
        """Settle a new report: write it and take its units out of stock."""
        self._require_lines(report_input)

        def body() -> DayEndReportResult:
            if self._report_for_date(report_input) is not None:
                raise DuplicateReportDateError(report_input.report_date)

            belt_markup = self.resolve_belt_markup(report_input)
            report = DayEndReport(
                created_at=self._clock.now(),
                created_by=self._actor_id,
            )
            return self._settle(report, report_input, belt_markup, action="create")

        return self._run_atomic(
            "day_end_report_create",
            body,
            report_date=report_input.report_date,
            line_count=len(report_input.lines),
        )

    def update_day_end_report(
        self, report_id: UUID, report_input: DayEndReportInput
    ) -> DayEndReportResult:
        """
        Reverse a committed report and settle the new line set in its place.

        The reversal puts the old units back on the shelf before the new lines
        are checked, so no restoration map is needed here (compare
        preview_day_end_report with ``editing_report_id``).
        """
        self._require_lines(report_input)

        def body() -> DayEndReportResult:
            report = self._get_report(report_id)
            clash = self._report_for_date(report_input)
            if clash is not None and clash.id != report.id:
                raise DuplicateReportDateError(report_input.report_date)

            belt_markup = self.resolve_belt_markup(report_input)
            self._reverse_lines(report)
            report.lines.clear()
            self.session.flush()

            return self._settle(report, report_input, belt_markup, action="update")

        return self._run_atomic(
            "day_end_report_update",
            body,
            report_id=str(report_id),
            report_date=report_input.report_date,
            line_count=len(report_input.lines),
        )

    def delete_day_end_report(self, report_id: UUID) -> None:
        """Return a report's units to stock and delete it."""

        def body() -> None:
            report = self._get_report(report_id)
            self._reverse_lines(report)
            self.session.delete(report)
            self.session.flush()

        self._run_atomic("day_end_report_delete", body, report_id=str(report_id))

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def resolve_belt_markup(self, report_input: DayEndReportInput) -> Decimal:
        """The input's markup, else the store setting, else the shipped default."""
        if report_input.belt_markup_rupees is not None:
            return report_input.belt_markup_rupees
        return normalize_money(self._settings.get_settings().default_belt_markup_rupees)

    def resolve_sale_item(self, line: DayEndLineInput) -> Item:
        """
        Find a sales line's item by id, then by SKU.

        Raises:
            UnknownItemError: Neither matches.
        """
        if line.item_id is not None:
            item = self.session.get(Item, line.item_id)
            if item is not None:
                return item
        if line.sku:
            item = self.session.scalars(select(Item).where(Item.sku == line.sku)).first()
            if item is not None:
                return item
        raise UnknownItemError(line.item_id, line.sku)

    def prepare_lines(
        self,
        report_input: DayEndReportInput,
        belt_markup: Decimal,
        stock_being_restored: dict[UUID, int] | None = None,
    ) -> PreparedSales:
        """
        Price every line and total the demand per item.

        Available stock per item is its current stock plus any units being
        restored by an edit.  Shortages are collected, not raised.
        """
        restored = stock_being_restored or {}
        lines: list[PreparedLine] = []
        demand: dict[UUID, ItemDemand] = {}

        for line in report_input.lines:
            item = self.resolve_sale_item(line)
            lines.append(
                price_line(
                    item_id=item.id,
                    item_name=item.name,
                    sku=item.sku,
                    channel=line.channel,
                    quantity=line.quantity_sold_units,
                    mrp_price=item.mrp_price,
                    unit_cost=item.unit_cost_basis,
                    belt_markup=belt_markup,
                    override=line.selling_price_per_unit,
                )
            )

            entry = demand.get(item.id)
            if entry is None:
                entry = ItemDemand(
                    item_id=item.id,
                    item_name=item.name,
                    quantity=0,
                    available=item.current_stock_units + restored.get(item.id, 0),
                )
                demand[item.id] = entry
            entry.quantity += line.quantity_sold_units

        return PreparedSales(
            lines=tuple(lines),
            demand=demand,
            shortages=find_shortages(demand.values()),
        )

    # ------------------------------------------------------------------
    # Settlement steps
    # ------------------------------------------------------------------

    @staticmethod
    def _require_lines(report_input: DayEndReportInput) -> None:
        if not report_input.lines:
            logger.warning("day_end_report_rejected_empty")
            raise EmptyLineItemsError("day-end report")

    def _report_for_date(self, report_input: DayEndReportInput) -> DayEndReport | None:
        return self.session.scalars(
            select(DayEndReport).where(DayEndReport.report_date == report_input.report_date)
        ).first()

    def _get_report(self, report_id: UUID) -> DayEndReport:
        report = self.session.get(DayEndReport, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report

    @staticmethod
    def _units_by_item(report: DayEndReport) -> dict[UUID, int]:
        units: dict[UUID, int] = {}
        for line in report.lines:
            units[line.item_id] = units.get(line.item_id, 0) + line.quantity_sold_units
        return units

    def _reverse_lines(self, report: DayEndReport) -> None:
        """Return every line's units to stock."""
        for item_id, quantity in self._units_by_item(report).items():
            item = self._ledger.lock_item(item_id)
            self._ledger.release(item, quantity)

    def _settle(
        self,
        report: DayEndReport,
        report_input: DayEndReportInput,
        belt_markup: Decimal,
        action: str,
    ) -> DayEndReportResult:
        prepared = self.prepare_lines(report_input, belt_markup)
        if prepared.shortages:
            raise InsufficientStockError(action, prepared.shortages)

        summary = summarize(prepared.lines)
        charges = self._history.charge_totals_up_to(report_input.report_date)
        allocation = allocate_net_profit(
            summary, charges.total_item_costs, charges.total_tax_misc
        )

        report.report_date = report_input.report_date
        report.belt_markup_rupees = normalize_money(belt_markup)
        report.notes = report_input.notes
        report.total_units_sold = summary.total_units
        report.total_sales_amount = summary.total_revenue
        report.retail_revenue = summary.retail_revenue
        report.belt_revenue = summary.belt_revenue
        report.total_cost = summary.total_cost
        report.total_profit = summary.total_profit
        report.total_net_profit = allocation.total_net_profit
        self.session.add(report)

        for line_number, line in enumerate(prepared.lines, start=1):
            report.lines.append(
                DayEndReportLine(
                    item_id=line.item_id,
                    line_number=line_number,
                    channel=line.channel.value,
                    quantity_sold_units=line.quantity_sold_units,
                    mrp_price=normalize_money(line.mrp_price),
                    selling_price_per_unit=normalize_money(line.selling_price_per_unit),
                    cost_price_at_sale=normalize_money(line.cost_price_at_sale),
                    line_revenue=normalize_money(line.line_revenue),
                    line_cost=normalize_money(line.line_cost),
                    line_profit=normalize_money(line.line_profit),
                    line_net_profit=line_net_profit(line, allocation, summary.total_cost),
                    created_at=self._clock.now(),
                    created_by=self._actor_id,
                )
            )
        self.session.flush()

        for demand in prepared.demand.values():
            item = self._ledger.lock_item(demand.item_id)
            self._ledger.issue(item, demand.quantity)
        self.session.flush()

        logger.info(
            "day_end_report_settled",
            extra={
                "report_id": str(report.id),
                "report_date": report.report_date,
                "total_units_sold": summary.total_units,
                "total_profit": summary.total_profit,
                "total_net_profit": allocation.total_net_profit,
                "allocated_tax_misc": normalize_money(allocation.allocated_tax_misc),
            },
        )
        return DayEndReportResult(report=DayEndReportInfo.from_model(report), summary=summary)

    def _translate_integrity_error(
        self, exc: IntegrityError
    ) -> InventoryKernelError | None:
        message = str(exc.orig).lower()
        if "uq_day_end_report_date" in message or "day_end_reports.report_date" in message:
            return DuplicateReportDateError("(created concurrently)")
        return None
