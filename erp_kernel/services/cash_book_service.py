"""
CashBookService -- appends movements to the cash book.

Responsibility:
    The only writer of CashLedgerEntry rows.  Each cash-moving posting calls
    ``record_inflow`` or ``record_outflow`` exactly once.

Architecture position:
    Kernel > Services.  Used by the sales, return, purchase, payment and
    expense services.

Invariants enforced:
    CASH_PAIRING -- one entry per cash event, exactly one positive side.
        Entries are append-only; corrections are new entries.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from erp_kernel.db.types import ZERO
from erp_kernel.exceptions import InvariantViolationError
from erp_kernel.invariants import KernelInvariant
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType, CashLedgerEntry
from erp_kernel.services.base import BaseService

logger = get_logger("services.cash_book")


class CashBookService(BaseService[CashLedgerEntry]):
    """
    Append-only writer for the company cash book.

    Non-goals:
        - Does NOT compute balances; see selectors.cash_book_selector.
    """

    def _append(
        self,
        entry_type: CashEntryType,
        entry_date: date,
        description: str,
        source_type: str,
        source_id: UUID,
        debit: Decimal,
        credit: Decimal,
        reference: str | None,
    ) -> CashLedgerEntry:
        if not ((debit > ZERO and credit == ZERO) or (debit == ZERO and credit > ZERO)):
            raise InvariantViolationError(
                KernelInvariant.CASH_PAIRING.value,
                f"{entry_type.value} entry for {source_type} {source_id} "
                f"has debit={debit} credit={credit}",
            )
        entry = CashLedgerEntry(
            company_code=self.company_code,
            entry_date=entry_date,
            entry_type=entry_type.value,
            description=description,
            debit_amount=debit,
            credit_amount=credit,
            source_type=source_type,
            source_id=source_id,
            reference=reference,
            created_by_id=self.actor_id,
        )
        self.session.add(entry)
        self.session.flush()
        logger.info(
            "cash_entry_recorded",
            extra={
                "entry_type": entry_type.value,
                "debit": debit,
                "credit": credit,
                "source_type": source_type,
                "source_id": str(source_id),
            },
        )
        return entry

    def record_inflow(
        self,
        entry_type: CashEntryType,
        entry_date: date,
        amount: Decimal,
        description: str,
        source_type: str,
        source_id: UUID,
        reference: str | None = None,
    ) -> CashLedgerEntry:
        """Money in (debit)."""
        return self._append(
            entry_type, entry_date, description, source_type, source_id, amount, ZERO, reference
        )

    def record_outflow(
        self,
        entry_type: CashEntryType,
        entry_date: date,
        amount: Decimal,
        description: str,
        source_type: str,
        source_id: UUID,
        reference: str | None = None,
    ) -> CashLedgerEntry:
        """Money out (credit)."""
        return self._append(
            entry_type, entry_date, description, source_type, source_id, ZERO, amount, reference
        )
