"""
Pricing -- line pricing, document totals and settlement splits.

Responsibility:
    The single place where document amounts are computed.  Every posting
    service (sales, returns, purchases) prices its lines here so that the
    same rounding rule applies everywhere.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Invariants enforced:
    - Rounding is applied per line at computation time:
          line_total = round(quantity * unit_price)
          tax_amount = round(line_total * tax_rate / 100)
    - Document totals are sums of already-rounded lines, so
      subtotal + tax_amount == total_amount exactly.
    - Allocations never exceed an open balance and never go negative.

Failure modes:
    - ValueError for non-positive quantity, negative price or negative rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Hashable, Iterable, Sequence

from erp_kernel.db.types import ZERO, round_money

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PricedLine:
    """One priced document line."""

    product_code: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    line_total: Decimal
    tax_amount: Decimal

    @property
    def gross_amount(self) -> Decimal:
        return self.line_total + self.tax_amount


@dataclass(frozen=True)
class DocumentTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def price_line(
    product_code: str,
    quantity: int,
    unit_price: Decimal,
    tax_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> PricedLine:
    """
    Price a single line.

    Args:
        product_code: Product being priced.
        quantity: Units, must be > 0.
        unit_price: Pre-tax price per unit.
        tax_rate: Percentage, e.g. Decimal("17") for 17 %.
        rounding: Decimal rounding mode from company policy.
    """
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive for {product_code}: {quantity}")
    if unit_price < 0:
        raise ValueError(f"Unit price must not be negative for {product_code}")
    if tax_rate < 0:
        raise ValueError(f"Tax rate must not be negative for {product_code}")

    line_total = round_money(Decimal(quantity) * unit_price, rounding=rounding)
    tax_amount = round_money(line_total * tax_rate / _HUNDRED, rounding=rounding)
    return PricedLine(
        product_code=product_code,
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
        line_total=line_total,
        tax_amount=tax_amount,
    )


def total_lines(lines: Iterable[PricedLine]) -> DocumentTotals:
    """Sum rounded lines into document totals."""
    subtotal = ZERO
    tax_amount = ZERO
    for line in lines:
        subtotal += line.line_total
        tax_amount += line.tax_amount
    return DocumentTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        total_amount=subtotal + tax_amount,
    )


@dataclass(frozen=True)
class LineAmounts:
    """Quantity and rounded amounts of an invoice line, or of its returns so far."""

    quantity: int = 0
    line_total: Decimal = ZERO
    tax_amount: Decimal = ZERO


def price_return_line(
    product_code: str,
    quantity: int,
    invoiced: LineAmounts,
    returned: LineAmounts,
    unit_price: Decimal,
    tax_rate: Decimal,
    rounding: str = ROUND_HALF_UP,
) -> PricedLine:
    """
    Price returned units of one invoice line.

    Units are priced at the invoiced unit price and tax rate.  The return
    that brings the line's returned quantity up to the invoiced quantity
    takes exactly what is left of the invoiced line total and tax, and no
    return takes more than is left.  Partial returns therefore never add up
    to more than the invoice line.
    """
    remaining_total = invoiced.line_total - returned.line_total
    remaining_tax = invoiced.tax_amount - returned.tax_amount
    if returned.quantity + quantity >= invoiced.quantity:
        line_total, tax_amount = remaining_total, remaining_tax
    else:
        priced = price_line(product_code, quantity, unit_price, tax_rate, rounding)
        line_total = min(priced.line_total, remaining_total)
        tax_amount = min(priced.tax_amount, remaining_tax)
    return PricedLine(
        product_code=product_code,
        quantity=quantity,
        unit_price=unit_price,
        tax_rate=tax_rate,
        line_total=max(line_total, ZERO),
        tax_amount=max(tax_amount, ZERO),
    )


def split_return_settlement(
    return_total: Decimal, balance_due: Decimal
) -> tuple[Decimal, Decimal]:
    """
    Split a return's value into (credit, refund).

    The credit part reduces what the customer still owes on the invoice; any
    remainder has already been paid and is refunded in cash.
    """
    credit = min(return_total, max(balance_due, ZERO))
    return credit, return_total - credit


def allocate_amount(
    amount: Decimal,
    open_balances: Sequence[tuple[Hashable, Decimal]],
) -> tuple[list[tuple[Hashable, Decimal]], Decimal]:
    """
    Apply ``amount`` to open balances in the given order.

    Returns:
        (allocations, unallocated) where allocations is a list of
        (key, applied_amount) with applied_amount > 0.
    """
    remaining = amount
    allocations: list[tuple[Hashable, Decimal]] = []
    for key, balance in open_balances:
        if remaining <= 0:
            break
        if balance <= 0:
            continue
        applied = min(balance, remaining)
        allocations.append((key, applied))
        remaining -= applied
    return allocations, remaining
