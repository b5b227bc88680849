"""
SalesReturnService -- posts goods returned against a sales invoice.

Responsibility:
    Restocks returned products and settles the returned value: the part the
    customer still owed is credited against the invoice and the customer
    balance, and any remainder (already paid) is refunded through the cash
    book.

Architecture position:
    Kernel > Services.  Called by PostingEngine inside a UnitOfWork.

Invariants enforced:
    - Cumulative returned quantity per product never exceeds the invoiced
      quantity.
    - Return lines are priced from the original invoice line snapshot
      (unit price and tax rate), with the same per-line rounding.  The
      return that completes a line takes the remainder of its invoiced
      amounts, so returns never exceed what was invoiced.
    - credit + refund == return total; balance_due stays within bounds.
    - Lock order: customer, invoice, products by code.

Failure modes:
    - InvoiceNotFoundError, ValidationFailedError (voided invoice, product
      not on invoice), ReturnExceedsInvoicedError.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select

from erp_kernel.db.types import ZERO, coerce_money, coerce_quantity
from erp_kernel.domain.dtos import SalesReturnInfo, SalesReturnRequest
from erp_kernel.domain.policy import DocumentType
from erp_kernel.domain.pricing import (
    LineAmounts,
    price_return_line,
    split_return_settlement,
    total_lines,
)
from erp_kernel.exceptions import ReturnExceedsInvoicedError, ValidationFailedError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.sales import ReturnStatus, SalesReturn, SalesReturnItem
from erp_kernel.services.base import BaseService
from erp_kernel.services.cash_book_service import CashBookService
from erp_kernel.services.catalog_service import CatalogService
from erp_kernel.services.invariant_guard import (
    check_balance_due,
    check_document_totals,
    check_returned_amount,
)
from erp_kernel.services.party_service import PartyService
from erp_kernel.services.sales_invoice_service import SalesInvoiceService
from erp_kernel.services.sequence_service import SequenceService

logger = get_logger("services.sales_return")

SOURCE_TYPE = "SALES_RETURN"


class SalesReturnService(BaseService[SalesReturn]):
    """Posts sales returns.  Returns are always COMPLETED on posting."""

    def __init__(self, session, context):
        super().__init__(session, context)
        self._invoices = SalesInvoiceService(session, context)
        self._parties = PartyService(session, context)
        self._catalog = CatalogService(session, context)
        self._cash = CashBookService(session, context)
        self._sequences = SequenceService(session)

    def _returned_so_far(self, invoice_id) -> dict[str, LineAmounts]:
        rows = self.session.execute(
            select(
                SalesReturnItem.product_code,
                func.sum(SalesReturnItem.quantity),
                func.sum(SalesReturnItem.line_total),
                func.sum(SalesReturnItem.tax_amount),
            )
            .join(SalesReturn, SalesReturn.id == SalesReturnItem.return_id)
            .where(SalesReturn.invoice_id == invoice_id)
            .group_by(SalesReturnItem.product_code)
        ).all()
        return {
            code: LineAmounts(coerce_quantity(qty), coerce_money(total), coerce_money(tax))
            for code, qty, total, tax in rows
        }

    def create_return(self, request: SalesReturnRequest) -> SalesReturnInfo:
        """
        Post a return.

        Postconditions:
            - Stock increased by each returned quantity.
            - invoice.balance_due and customer balance reduced by the credit.
            - refund > 0 writes one SALES_RETURN cash credit.
            - invoice.returned_amount increased by the return total.
        """
        request.validate()

        customer_code = self._invoices.get_invoice_row(request.invoice_id).customer_code
        customer = self._parties.lock_customer(customer_code, require_active=False)
        invoice = self._invoices.lock_invoice(request.invoice_id)
        if invoice.is_voided:
            raise ValidationFailedError("invoice_id", f"invoice {invoice.number} is voided")

        invoiced = {item.product_code: item for item in invoice.items}
        already = self._returned_so_far(invoice.id)
        for line in request.lines:
            item = invoiced.get(line.product_code)
            if item is None:
                raise ValidationFailedError(
                    "product_code", f"{line.product_code} is not on invoice {invoice.number}"
                )
            returned = already.get(line.product_code, LineAmounts()).quantity
            if returned + line.quantity > item.quantity:
                raise ReturnExceedsInvoicedError(
                    invoice.number, line.product_code, item.quantity, returned, line.quantity
                )

        products = self._catalog.lock_products(line.product_code for line in request.lines)

        priced = []
        for line in request.lines:
            item = invoiced[line.product_code]
            priced.append(
                price_return_line(
                    line.product_code,
                    line.quantity,
                    LineAmounts(
                        item.quantity, coerce_money(item.line_total), coerce_money(item.tax_amount)
                    ),
                    already.get(line.product_code, LineAmounts()),
                    coerce_money(item.unit_price),
                    Decimal(str(item.tax_rate)),
                    self.policy.rounding,
                )
            )
        totals = total_lines(priced)
        balance_due = coerce_money(invoice.balance_due)
        credit, refund = split_return_settlement(totals.total_amount, balance_due)

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.SALES_RETURN, self.policy
        )
        sales_return = SalesReturn(
            company_code=self.company_code,
            number=number,
            return_date=request.return_date,
            invoice_id=invoice.id,
            invoice_number=invoice.number,
            customer_code=customer.code,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            credit_amount=credit,
            refund_amount=refund,
            status=ReturnStatus.COMPLETED.value,
            created_by_id=self.actor_id,
        )
        for line_number, line in enumerate(priced, start=1):
            sales_return.items.append(
                SalesReturnItem(
                    company_code=self.company_code,
                    line_number=line_number,
                    product_id=products[line.product_code].id,
                    product_code=line.product_code,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate,
                    line_total=line.line_total,
                    tax_amount=line.tax_amount,
                    created_by_id=self.actor_id,
                )
            )
        self.session.add(sales_return)
        self.session.flush()

        for line in priced:
            product = products[line.product_code]
            product.current_stock += line.quantity
            self._stamp(product)

        invoice.balance_due = balance_due - credit
        invoice.returned_amount = coerce_money(invoice.returned_amount) + totals.total_amount
        self._stamp(invoice)
        if credit > ZERO:
            customer.outstanding_balance = coerce_money(customer.outstanding_balance) - credit
            self._stamp(customer)
        if refund > ZERO:
            self._cash.record_outflow(
                CashEntryType.SALES_RETURN,
                request.return_date,
                refund,
                f"Refund for return {number} on {invoice.number}",
                SOURCE_TYPE,
                sales_return.id,
                reference=number,
            )

        check_document_totals(
            number,
            [line.line_total for line in priced],
            [line.tax_amount for line in priced],
            totals.subtotal,
            totals.tax_amount,
            totals.total_amount,
        )
        check_balance_due(invoice.number, invoice.balance_due, coerce_money(invoice.total_amount))
        check_returned_amount(
            invoice.number, invoice.returned_amount, coerce_money(invoice.total_amount)
        )
        self.session.flush()

        logger.info(
            "sales_return_posted",
            extra={
                "return_number": number,
                "invoice_number": invoice.number,
                "customer_code": customer.code,
                "total_amount": totals.total_amount,
                "credit_amount": credit,
                "refund_amount": refund,
            },
        )
        return SalesReturnInfo.from_model(sales_return)
