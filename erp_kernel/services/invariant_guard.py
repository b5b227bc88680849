"""
Post-mutation invariant checks.

Each posting service calls these after mutating rows and before its
transaction commits.  A failure raises ``InvariantViolationError`` and the
unit of work rolls the whole posting back.  They are guards against bugs,
not business validation: correct services never trip them.
"""

from decimal import Decimal

from erp_kernel.db.types import ZERO
from erp_kernel.exceptions import InvariantViolationError
from erp_kernel.invariants import KernelInvariant
from erp_kernel.logging_config import get_logger

logger = get_logger("services.invariant_guard")


def _fail(invariant: KernelInvariant, detail: str) -> None:
    logger.critical("invariant_violated", extra={"invariant": invariant.value, "detail": detail})
    raise InvariantViolationError(invariant.value, detail)


def check_document_totals(
    number: str,
    line_totals: list[Decimal],
    line_taxes: list[Decimal],
    subtotal: Decimal,
    tax_amount: Decimal,
    total_amount: Decimal,
) -> None:
    """Sum of rounded lines must reproduce the header totals exactly."""
    if sum(line_totals, ZERO) != subtotal or sum(line_taxes, ZERO) != tax_amount:
        _fail(KernelInvariant.INVOICE_TOTALS, f"{number}: line sums differ from header")
    if subtotal + tax_amount != total_amount:
        _fail(
            KernelInvariant.INVOICE_TOTALS,
            f"{number}: subtotal {subtotal} + tax {tax_amount} != total {total_amount}",
        )


def check_balance_due(number: str, balance_due: Decimal, total_amount: Decimal) -> None:
    if balance_due < ZERO or balance_due > total_amount:
        _fail(
            KernelInvariant.BALANCE_DUE_BOUNDS,
            f"{number}: balance_due {balance_due} outside [0, {total_amount}]",
        )


def check_stock(product_code: str, current_stock: int) -> None:
    if current_stock < 0:
        _fail(KernelInvariant.NON_NEGATIVE_STOCK, f"{product_code}: stock {current_stock}")


def check_returned_amount(number: str, returned_amount: Decimal, total_amount: Decimal) -> None:
    if returned_amount < ZERO or returned_amount > total_amount:
        _fail(
            KernelInvariant.RETURNS_WITHIN_INVOICE,
            f"{number}: returned_amount {returned_amount} exceeds total {total_amount}",
        )
