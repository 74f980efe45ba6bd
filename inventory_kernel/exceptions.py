"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (the HTTP layer, import jobs, tests) must react to settlement errors
precisely: a duplicate report date is a 409, a missing purchase is a 404, a
stock shortage is a 400 with the list of short items.  Parsing message
strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. Every category carries the HTTP status its callers map it to

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- ValidationError                      (400)
    |   +-- EmptyLineItemsError
    |   +-- InvalidLineError
    |   +-- MissingItemDetailsError
    |   +-- UnknownItemError
    |   +-- InsufficientStockError
    |   +-- NegativeStockError
    |   +-- InvalidDateError
    |   +-- InvalidSettingError
    |
    +-- NotFoundError                        (404)
    |   +-- ItemNotFoundError
    |   +-- PurchaseNotFoundError
    |   +-- ReportNotFoundError
    |
    +-- ConflictError                        (409)
    |   +-- DuplicateReportDateError
    |   +-- DuplicateSkuError
    |
    +-- ConcurrencyError                     (409, retryable)
        +-- ConcurrentSettlementError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                     | When Raised
-------------|--------------------------|-------------------------------------------
Validation   | EMPTY_LINE_ITEMS         | Purchase or report with no lines
             | INVALID_LINE             | Quantity <= 0, negative cost, bad channel
             | MISSING_ITEM_DETAILS     | Auto-created item without a name
             | UNKNOWN_ITEM             | Sales line resolves to no item
             | INSUFFICIENT_STOCK       | Collected shortages before settlement
             | NEGATIVE_STOCK           | Final per-item safeguard during decrement
             | INVALID_DATE             | Business date not in YYYY-MM-DD form
             | INVALID_SETTING          | Negative markup, non-positive threshold
-------------|--------------------------|-------------------------------------------
Not found    | ITEM_NOT_FOUND           | Item id/SKU does not exist
             | PURCHASE_NOT_FOUND       | Purchase id does not exist
             | REPORT_NOT_FOUND         | Report id does not exist
-------------|--------------------------|-------------------------------------------
Conflict     | DUPLICATE_REPORT_DATE    | A report already exists for the date
             | DUPLICATE_SKU            | New item's SKU is already taken
-------------|--------------------------|-------------------------------------------
Concurrency  | CONCURRENT_SETTLEMENT    | Serialization failure / deadlock / lock
             |                          | timeout -- safe to retry the request

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        DayEndReportService(session).create_day_end_report(report_input)
    except InsufficientStockError as e:
        return {"error": e.code, "shortages": [s.item_name for s in e.shortages]}
    except ConcurrencyError:
        retry_request()
    except InventoryKernelError as e:
        return {"error": e.code, "message": str(e)}, e.http_status
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from inventory_kernel.domain.dtos import Shortage


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    http_status: int = 500


# Validation


class ValidationError(InventoryKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 400


class EmptyLineItemsError(ValidationError):
    """A purchase or report was submitted without any lines."""

    code: str = "EMPTY_LINE_ITEMS"

    def __init__(self, document: str):
        self.document = document
        super().__init__(f"At least one line is required for a {document}")


class InvalidLineError(ValidationError):
    """A single line carries an impossible value."""

    code: str = "INVALID_LINE"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}")


class MissingItemDetailsError(ValidationError):
    """A purchase line would create a new item but lacks its identity."""

    code: str = "MISSING_ITEM_DETAILS"

    def __init__(self, sku: str | None):
        self.sku = sku
        super().__init__(
            f"New items require a name (sku={sku or 'not given'})"
        )


class UnknownItemError(ValidationError):
    """A sales line references neither a known item id nor a known SKU."""

    code: str = "UNKNOWN_ITEM"

    def __init__(self, item_id: object = None, sku: str | None = None):
        self.item_id = item_id
        self.sku = sku
        super().__init__("Unknown item in sales line")


class InsufficientStockError(ValidationError):
    """
    One or more items do not have enough stock for the requested sale.

    Raised once with every shortage collected, so the caller can show the
    full list instead of failing on the first item.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, action: str, shortages: Sequence[Shortage]):
        self.action = action
        self.shortages = tuple(shortages)
        details = ", ".join(
            f"{s.item_name} (needs {s.required}, has {s.available})"
            for s in self.shortages
        )
        super().__init__(
            f"Cannot {action} report. Items with insufficient stock: {details}"
        )


class NegativeStockError(ValidationError):
    """Final safeguard: a decrement would take an item's stock below zero."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, item_name: str, required: int, available: int):
        self.item_name = item_name
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stock for {item_name}: need {required}, "
            f"only {available} available"
        )


class InvalidDateError(ValidationError):
    """A business date string is not in YYYY-MM-DD form."""

    code: str = "INVALID_DATE"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid date format: {value}. Expected YYYY-MM-DD")


class InvalidSettingError(ValidationError):
    """A settings update carries an out-of-range value."""

    code: str = "INVALID_SETTING"

    def __init__(self, setting: str, value: object):
        self.setting = setting
        self.value = value
        super().__init__(f"Invalid value {value!r} for setting {setting}")


# Not found


class NotFoundError(InventoryKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class ItemNotFoundError(NotFoundError):
    """Item with given id or SKU was not found."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_ref: object, reason: str | None = None):
        self.item_ref = item_ref
        self.reason = reason
        message = f"Item not found: {item_ref}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PurchaseNotFoundError(NotFoundError):
    """Purchase with given id was not found."""

    code: str = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: object):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase not found: {purchase_id}")


class ReportNotFoundError(NotFoundError):
    """Day-end report with given id was not found."""

    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: object):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


# Conflict


class ConflictError(InventoryKernelError):
    """Base exception for uniqueness conflicts."""

    code: str = "CONFLICT"
    http_status: int = 409


class DuplicateReportDateError(ConflictError):
    """A day-end report already exists for the date."""

    code: str = "DUPLICATE_REPORT_DATE"

    def __init__(self, report_date: object):
        self.report_date = report_date
        super().__init__(
            f"A day-end report already exists for {report_date}. "
            "Please edit the existing report instead."
        )


class DuplicateSkuError(ConflictError):
    """A new item would reuse an existing SKU."""

    code: str = "DUPLICATE_SKU"

    def __init__(self, sku: str):
        self.sku = sku
        super().__init__(f"An item with SKU {sku} already exists")


# Concurrency


class ConcurrencyError(InventoryKernelError):
    """Base exception for contention between concurrent settlements."""

    code: str = "CONCURRENCY_ERROR"
    http_status: int = 409
    retryable: bool = True


class ConcurrentSettlementError(ConcurrencyError):
    """
    The database refused the settlement because another transaction touched
    the same rows (serialization failure, deadlock, lock timeout).

    Nothing was persisted; the caller may retry the whole request.
    """

    code: str = "CONCURRENT_SETTLEMENT"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Concurrent modification during {operation}; retry the request ({detail})"
        )
