"""
Ledger Invariants Contract.

These invariants hold after every committed posting.  They are hardcoded in
the posting services and in database check/unique constraints.  No company
setting may switch them off.

This module exists to declare them explicitly.  Enforcement is distributed
across the posting services, SequenceService, the ORM constraints and
``erp_kernel.services.invariant_guard``.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the posting kernel."""

    BALANCE_DUE_BOUNDS = "balance_due_bounds"
    """0 <= balance_due <= total_amount on every sales and purchase invoice.
    Enforced by services and a DB check constraint."""

    INVOICE_TOTALS = "invoice_totals"
    """Sum of rounded line totals plus tax equals total_amount.  Enforced by
    domain.pricing and re-checked before flush."""

    STOCK_PAIRING = "stock_pairing"
    """Every change to product.current_stock is paired with an invoice,
    return, purchase, void or stock adjustment line in the same
    transaction."""

    CASH_PAIRING = "cash_pairing"
    """Every cash-moving event writes exactly one CashLedgerEntry carrying
    either a debit or a credit.  Enforced by CashBookService and a DB
    check constraint."""

    NON_NEGATIVE_STOCK = "non_negative_stock"
    """Sales and purchase voids never drive current_stock below zero."""

    RETURNS_WITHIN_INVOICE = "returns_within_invoice"
    """Returns never give back more than was invoiced: per invoice line the
    returned line totals and taxes stay within the invoiced ones, and
    returned_amount <= total_amount.  The return that completes a line takes
    exactly the remainder."""

    DOCUMENT_NUMBER_UNIQUENESS = "document_number_uniqueness"
    """Document numbers are unique per company and type, allocated from a
    locked counter row.  Enforced by SequenceService and unique
    constraints."""


ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "erp_config",
)
