"""
SalesInvoiceService -- posts, voids and revises sales invoices.

Responsibility:
    Turns a validated SalesInvoiceRequest into a numbered invoice while, in
    the same transaction, decrementing stock and either raising the
    customer's outstanding balance (PENDING) or writing a cash-book debit
    (PAID).  Voids are compensating postings: stock comes back, the balance
    or cash movement is reversed, and the invoice row stays with
    ``is_voided`` set.

Architecture position:
    Kernel > Services.  Called by PostingEngine inside a UnitOfWork.

Invariants enforced:
    STOCK_PAIRING      -- every stock decrement is an invoice line.
    INVOICE_TOTALS     -- per-line rounding via domain.pricing; re-checked.
    BALANCE_DUE_BOUNDS -- PENDING starts at total, PAID at zero.
    CASH_PAIRING       -- PAID invoices write exactly one SALES debit.
    Lock order         -- customer, then invoice, then products by code.

Failure modes:
    - CustomerNotFoundError / PartyInactiveError
    - ProductNotFoundError / TaxRateNotFoundError
    - StockInsufficientError (raised before any row is modified)
    - CreditLimitExceededError (PENDING only, limit > 0)
    - InvoiceNotFoundError / InvoiceNotVoidableError on void

Audit relevance:
    Emits ``sales_invoice_posted`` and ``sales_invoice_voided`` with number,
    customer, totals and settlement.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select

from erp_kernel.db.types import ZERO, coerce_money
from erp_kernel.domain.dtos import SalesInvoiceInfo, SalesInvoiceRequest
from erp_kernel.domain.policy import DocumentType
from erp_kernel.domain.pricing import price_line, total_lines
from erp_kernel.exceptions import (
    CreditLimitExceededError,
    InvoiceNotFoundError,
    InvoiceNotVoidableError,
    StockInsufficientError,
    ValidationFailedError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.payments import ReceiptAllocation
from erp_kernel.models.sales import SalesInvoice, SalesInvoiceItem, SalesReturn, Settlement
from erp_kernel.services.base import BaseService
from erp_kernel.services.cash_book_service import CashBookService
from erp_kernel.services.catalog_service import CatalogService
from erp_kernel.services.invariant_guard import (
    check_balance_due,
    check_document_totals,
    check_stock,
)
from erp_kernel.services.party_service import PartyService
from erp_kernel.services.sequence_service import SequenceService

logger = get_logger("services.sales_invoice")

SOURCE_TYPE = "SALES_INVOICE"


class SalesInvoiceService(BaseService[SalesInvoice]):
    """
    Posts sales invoices and their compensating voids.

    Guarantees:
        - All validation that can fail happens before the first mutation.
        - Returns SalesInvoiceInfo with status derived as of the clock's today.

    Non-goals:
        - Does NOT commit.  Does NOT edit posted invoices in place.
    """

    def __init__(self, session, context):
        super().__init__(session, context)
        self._parties = PartyService(session, context)
        self._catalog = CatalogService(session, context)
        self._cash = CashBookService(session, context)
        self._sequences = SequenceService(session)

    def _invoice_stmt(self, invoice_id: UUID):
        return select(SalesInvoice).where(
            SalesInvoice.company_code == self.company_code,
            SalesInvoice.id == invoice_id,
        )

    def get_invoice_row(self, invoice_id: UUID) -> SalesInvoice:
        invoice = self.session.execute(self._invoice_stmt(invoice_id)).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id), self.company_code)
        return invoice

    def lock_invoice(self, invoice_id: UUID) -> SalesInvoice:
        invoice = self.session.execute(
            self._invoice_stmt(invoice_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id), self.company_code)
        return invoice

    def _to_dto(self, invoice: SalesInvoice) -> SalesInvoiceInfo:
        return SalesInvoiceInfo.from_model(invoice, as_of=self.context.clock.today())

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_invoice(
        self,
        request: SalesInvoiceRequest,
        revises_invoice_id: UUID | None = None,
    ) -> SalesInvoiceInfo:
        """
        Post a sales invoice.

        Preconditions:
            - Called inside an open transaction (UnitOfWork).

        Postconditions:
            - Stock of every product decreased by its line quantity.
            - PENDING: balance_due == total, customer balance += total.
            - PAID: balance_due == 0, one SALES cash debit of total.
        """
        request.validate()
        rounding = self.policy.rounding

        customer = self._parties.lock_customer(request.customer_code)
        products = self._catalog.lock_products(line.product_code for line in request.lines)

        # Check every line before touching anything
        priced = []
        for line in request.lines:
            product = products[line.product_code]
            if not product.is_active:
                raise ValidationFailedError("product_code", f"{product.code} is inactive")
            if product.current_stock < line.quantity:
                raise StockInsufficientError(product.code, line.quantity, product.current_stock)
            priced.append(
                price_line(
                    product.code,
                    line.quantity,
                    coerce_money(product.unit_price),
                    self._catalog.resolve_tax_rate(product),
                    rounding,
                )
            )
        totals = total_lines(priced)
        is_pending = request.settlement == Settlement.PENDING.value

        balance = coerce_money(customer.outstanding_balance)
        if is_pending and self.policy.enforce_credit_limits:
            limit = coerce_money(customer.credit_limit)
            if limit > ZERO and balance + totals.total_amount > limit:
                raise CreditLimitExceededError(
                    customer.code, limit, balance, totals.total_amount
                )

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.SALES_INVOICE, self.policy
        )

        terms = customer.credit_terms_days
        if terms is None:
            terms = self.policy.payment_terms_days

        invoice = SalesInvoice(
            company_code=self.company_code,
            number=number,
            invoice_date=request.invoice_date,
            due_date=request.invoice_date + timedelta(days=terms),
            customer_id=customer.id,
            customer_code=customer.code,
            settlement=request.settlement,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            balance_due=totals.total_amount if is_pending else ZERO,
            returned_amount=ZERO,
            is_voided=False,
            revises_invoice_id=revises_invoice_id,
            created_by_id=self.actor_id,
        )
        for line_number, line in enumerate(priced, start=1):
            product = products[line.product_code]
            invoice.items.append(
                SalesInvoiceItem(
                    company_code=self.company_code,
                    line_number=line_number,
                    product_id=product.id,
                    product_code=product.code,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    tax_rate=line.tax_rate,
                    line_total=line.line_total,
                    tax_amount=line.tax_amount,
                    created_by_id=self.actor_id,
                )
            )
        self.session.add(invoice)
        self.session.flush()

        for line in priced:
            product = products[line.product_code]
            product.current_stock -= line.quantity
            self._stamp(product)
            check_stock(product.code, product.current_stock)

        if is_pending:
            customer.outstanding_balance = balance + totals.total_amount
            self._stamp(customer)
        elif totals.total_amount > ZERO:
            self._cash.record_inflow(
                CashEntryType.SALES,
                request.invoice_date,
                totals.total_amount,
                f"Sales invoice {number} - {customer.name}",
                SOURCE_TYPE,
                invoice.id,
                reference=number,
            )

        check_document_totals(
            number,
            [line.line_total for line in priced],
            [line.tax_amount for line in priced],
            invoice.subtotal,
            invoice.tax_amount,
            invoice.total_amount,
        )
        check_balance_due(number, invoice.balance_due, invoice.total_amount)
        self.session.flush()

        logger.info(
            "sales_invoice_posted",
            extra={
                "invoice_number": number,
                "customer_code": customer.code,
                "settlement": request.settlement,
                "line_count": len(priced),
                "total_amount": totals.total_amount,
            },
        )
        for product in products.values():
            self._catalog.warn_if_low(product)
        return self._to_dto(invoice)

    # ------------------------------------------------------------------
    # Void / revise
    # ------------------------------------------------------------------

    def _assert_voidable(self, invoice: SalesInvoice) -> None:
        if invoice.is_voided:
            raise InvoiceNotVoidableError(invoice.number, "already voided")
        allocated = self.session.execute(
            select(func.count(ReceiptAllocation.id)).where(
                ReceiptAllocation.invoice_id == invoice.id
            )
        ).scalar_one()
        if allocated:
            raise InvoiceNotVoidableError(invoice.number, "receipts have been applied")
        returned = self.session.execute(
            select(func.count(SalesReturn.id)).where(SalesReturn.invoice_id == invoice.id)
        ).scalar_one()
        if returned:
            raise InvoiceNotVoidableError(invoice.number, "goods have been returned")

    def void_invoice(self, invoice_id: UUID, reason: str) -> SalesInvoiceInfo:
        """
        Void an invoice with compensating movements.

        Postconditions:
            - Stock restored for every line.
            - PENDING: customer balance reduced by the invoice's balance_due.
            - PAID: one SALES_VOID cash credit of the invoice total.
            - balance_due == 0, is_voided set; the row is kept.
        """
        if not reason or not reason.strip():
            raise ValidationFailedError("reason", "a void reason is required")

        customer_code = self.get_invoice_row(invoice_id).customer_code
        customer = self._parties.lock_customer(customer_code, require_active=False)
        invoice = self.lock_invoice(invoice_id)
        self._assert_voidable(invoice)

        products = self._catalog.lock_products(item.product_code for item in invoice.items)
        for item in invoice.items:
            product = products[item.product_code]
            product.current_stock += item.quantity
            self._stamp(product)

        total = coerce_money(invoice.total_amount)
        if invoice.settlement == Settlement.PENDING.value:
            customer.outstanding_balance = (
                coerce_money(customer.outstanding_balance) - coerce_money(invoice.balance_due)
            )
            self._stamp(customer)
        elif total > ZERO:
            self._cash.record_outflow(
                CashEntryType.SALES_VOID,
                self.context.clock.today(),
                total,
                f"Void of sales invoice {invoice.number}: {reason}",
                SOURCE_TYPE,
                invoice.id,
                reference=invoice.number,
            )

        invoice.balance_due = ZERO
        invoice.is_voided = True
        invoice.void_reason = reason
        invoice.voided_at = self.context.clock.now()
        self._stamp(invoice)
        self.session.flush()

        logger.info(
            "sales_invoice_voided",
            extra={
                "invoice_number": invoice.number,
                "customer_code": customer.code,
                "settlement": invoice.settlement,
                "total_amount": total,
                "reason": reason,
            },
        )
        return self._to_dto(invoice)

    def revise_invoice(
        self,
        invoice_id: UUID,
        request: SalesInvoiceRequest,
        reason: str,
    ) -> tuple[SalesInvoiceInfo, SalesInvoiceInfo]:
        """
        Replace an invoice: void it and post ``request`` as a new invoice
        that points back at it.

        Returns:
            (voided original, new invoice)
        """
        request.validate()
        voided = self.void_invoice(invoice_id, reason)
        created = self.create_invoice(request, revises_invoice_id=invoice_id)
        logger.info(
            "sales_invoice_revised",
            extra={"voided_number": voided.number, "new_number": created.number},
        )
        return voided, created
