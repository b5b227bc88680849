"""
Module: erp_kernel.selectors.cash_book_selector
Responsibility: Read-only views over the cash book: entry listings and the
    running cash balance.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - There is no stored cash balance.  ``cash_balance`` is always
      sum(debit) - sum(credit) over the entries up to a date.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from erp_kernel.db.types import coerce_money
from erp_kernel.domain.dtos import CashEntryInfo
from erp_kernel.models.cash_ledger import CashLedgerEntry
from erp_kernel.selectors.base import BaseSelector, Page


@dataclass(frozen=True)
class CashTotals:
    total_inflow: Decimal
    total_outflow: Decimal
    entry_count: int

    @property
    def net(self) -> Decimal:
        return self.total_inflow - self.total_outflow


class CashBookSelector(BaseSelector[CashLedgerEntry]):
    """Selector for the company cash book."""

    def list_entries(
        self,
        page: int = 1,
        page_size: int | None = None,
        entry_type: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> Page[CashEntryInfo]:
        stmt = select(CashLedgerEntry).where(CashLedgerEntry.company_code == self.company_code)
        if entry_type is not None:
            stmt = stmt.where(CashLedgerEntry.entry_type == entry_type)
        if date_from is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date <= date_to)
        stmt = stmt.order_by(
            CashLedgerEntry.entry_date.desc(),
            CashLedgerEntry.created_at.desc(),
            CashLedgerEntry.id,
        )
        return self._paginate(stmt, CashEntryInfo.from_model, page, page_size)

    def entries_for_source(self, source_type: str, source_id) -> list[CashEntryInfo]:
        rows = self.session.execute(
            select(CashLedgerEntry)
            .where(
                CashLedgerEntry.company_code == self.company_code,
                CashLedgerEntry.source_type == source_type,
                CashLedgerEntry.source_id == source_id,
            )
            .order_by(CashLedgerEntry.created_at, CashLedgerEntry.id)
        ).scalars().all()
        return [CashEntryInfo.from_model(row) for row in rows]

    def totals(self, date_from: date | None = None, date_to: date | None = None) -> CashTotals:
        """Inflow, outflow and entry count over an optional date range."""
        stmt = select(
            func.coalesce(func.sum(CashLedgerEntry.debit_amount), 0),
            func.coalesce(func.sum(CashLedgerEntry.credit_amount), 0),
            func.count(CashLedgerEntry.id),
        ).where(CashLedgerEntry.company_code == self.company_code)
        if date_from is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date <= date_to)
        inflow, outflow, count = self.session.execute(stmt).one()
        return CashTotals(
            total_inflow=coerce_money(inflow),
            total_outflow=coerce_money(outflow),
            entry_count=int(count or 0),
        )

    def cash_balance(self, as_of: date | None = None) -> Decimal:
        """Cash on hand at the end of ``as_of`` (all entries when None)."""
        return self.totals(date_to=as_of).net
