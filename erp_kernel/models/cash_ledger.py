"""
Module: erp_kernel.models.cash_ledger
Responsibility: ORM persistence for the cash book: an append-only list of
    money movements, each produced by exactly one posting.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Exactly one of debit_amount / credit_amount is positive, the other is
      zero (ck_cash_entry_one_side).
    - source_type + source_id identify the document that produced the entry.
    - Entries are never updated or deleted; reversals are new entries
      (SALES_VOID, PURCHASE_VOID).

Audit relevance:
    The running cash balance is computed on read (sum of debits minus sum of
    credits up to a date).  It is never stored.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import CompanyScopedBase, UUIDString


class CashEntryType(str, Enum):
    """Category of a cash movement."""

    SALES = "SALES"
    SALES_RETURN = "SALES_RETURN"
    SALES_VOID = "SALES_VOID"
    PURCHASE = "PURCHASE"
    PURCHASE_VOID = "PURCHASE_VOID"
    RECEIPT = "RECEIPT"
    PAYMENT = "PAYMENT"
    EXPENSE = "EXPENSE"


class CashLedgerEntry(CompanyScopedBase):
    """One cash-book movement (debit = money in, credit = money out)."""

    __tablename__ = "cash_ledger_entries"

    __table_args__ = (
        CheckConstraint(
            "(debit_amount > 0 AND credit_amount = 0) OR "
            "(debit_amount = 0 AND credit_amount > 0)",
            name="ck_cash_entry_one_side",
        ),
        Index("idx_cash_entry_date", "company_code", "entry_date"),
        Index("idx_cash_entry_source", "source_type", "source_id"),
    )

    entry_date: Mapped[date] = mapped_column(nullable=False)
    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    debit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    source_type: Mapped[str] = mapped_column(String(30), nullable=False)
    source_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<CashLedgerEntry {self.entry_type} {self.entry_date} "
            f"dr={self.debit_amount} cr={self.credit_amount}>"
        )
