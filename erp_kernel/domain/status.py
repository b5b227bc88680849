"""
Balance projection -- derived document and stock status.

Responsibility:
    Computes the display status of an invoice and the stock classification
    of a product from stored columns.  Status is never persisted, so it can
    never disagree with the balances it is derived from.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.
"""

from datetime import date
from decimal import Decimal
from enum import Enum


class InvoiceStatus(str, Enum):
    PAID = "PAID"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"
    VOID = "VOID"


class StockStatus(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"


def derive_invoice_status(
    total_amount: Decimal,
    balance_due: Decimal,
    returned_amount: Decimal = Decimal("0"),
    due_date: date | None = None,
    as_of: date | None = None,
    is_voided: bool = False,
) -> InvoiceStatus:
    """
    Derive an invoice's status.

    Rules, first match wins:
        VOID     -- the invoice was voided.
        PAID     -- nothing is owed (balance_due <= 0).
        OVERDUE  -- something is owed and ``as_of`` is past ``due_date``.
        PENDING  -- nothing has been settled beyond returns
                    (balance_due >= total - returned).
        PARTIAL  -- otherwise.
    """
    if is_voided:
        return InvoiceStatus.VOID
    if balance_due <= 0:
        return InvoiceStatus.PAID
    if due_date is not None and as_of is not None and as_of > due_date:
        return InvoiceStatus.OVERDUE
    if balance_due >= total_amount - returned_amount:
        return InvoiceStatus.PENDING
    return InvoiceStatus.PARTIAL


def classify_stock(current_stock: int, min_stock_level: int) -> StockStatus:
    """OUT_OF_STOCK at zero, LOW_STOCK at or below the minimum, else IN_STOCK."""
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= min_stock_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
