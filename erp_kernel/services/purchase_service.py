"""
PurchaseService -- posts and voids supplier purchase invoices.

Responsibility:
    Mirror of the sales side for stock coming in: increments stock and
    either raises the supplier's outstanding balance (PENDING) or writes a
    PURCHASE cash credit (PAID).  A void takes the goods back out (stock must
    still be on hand) and reverses the balance or cash movement.

Architecture position:
    Kernel > Services.  Called by PostingEngine inside a UnitOfWork.

Invariants enforced:
    - Same canonical tax rule and per-line rounding as sales.
    - NON_NEGATIVE_STOCK on void.
    - Lock order: supplier, purchase, products by code.
"""

from __future__ import annotations

from datetime import timedelta
from uuid import UUID

from sqlalchemy import func, select

from erp_kernel.db.types import ZERO, coerce_money
from erp_kernel.domain.dtos import PurchaseInvoiceInfo, PurchaseInvoiceRequest
from erp_kernel.domain.policy import DocumentType
from erp_kernel.domain.pricing import price_line, total_lines
from erp_kernel.exceptions import (
    InvoiceNotVoidableError,
    PurchaseInvoiceNotFoundError,
    StockInsufficientError,
    ValidationFailedError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.payments import PaymentAllocation
from erp_kernel.models.purchase import PurchaseInvoice, PurchaseInvoiceItem
from erp_kernel.models.sales import Settlement
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

logger = get_logger("services.purchase")

SOURCE_TYPE = "PURCHASE_INVOICE"


class PurchaseService(BaseService[PurchaseInvoice]):
    """Posts purchase invoices and their compensating voids."""

    def __init__(self, session, context):
        super().__init__(session, context)
        self._parties = PartyService(session, context)
        self._catalog = CatalogService(session, context)
        self._cash = CashBookService(session, context)
        self._sequences = SequenceService(session)

    def _purchase_stmt(self, purchase_id: UUID):
        return select(PurchaseInvoice).where(
            PurchaseInvoice.company_code == self.company_code,
            PurchaseInvoice.id == purchase_id,
        )

    def get_purchase_row(self, purchase_id: UUID) -> PurchaseInvoice:
        purchase = self.session.execute(self._purchase_stmt(purchase_id)).scalar_one_or_none()
        if purchase is None:
            raise PurchaseInvoiceNotFoundError(str(purchase_id), self.company_code)
        return purchase

    def lock_purchase(self, purchase_id: UUID) -> PurchaseInvoice:
        purchase = self.session.execute(
            self._purchase_stmt(purchase_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if purchase is None:
            raise PurchaseInvoiceNotFoundError(str(purchase_id), self.company_code)
        return purchase

    def _to_dto(self, purchase: PurchaseInvoice) -> PurchaseInvoiceInfo:
        return PurchaseInvoiceInfo.from_model(purchase, as_of=self.context.clock.today())

    def create_purchase(self, request: PurchaseInvoiceRequest) -> PurchaseInvoiceInfo:
        """
        Post a purchase invoice.

        Postconditions:
            - Stock of every product increased by its line quantity.
            - PENDING: balance_due == total, supplier balance += total.
            - PAID: balance_due == 0, one PURCHASE cash credit of total.
        """
        request.validate()

        supplier = self._parties.lock_supplier(request.supplier_code)
        products = self._catalog.lock_products(line.product_code for line in request.lines)

        priced = []
        for line in request.lines:
            product = products[line.product_code]
            unit_cost = line.unit_cost
            if unit_cost is None:
                unit_cost = coerce_money(product.purchase_price)
            priced.append(
                price_line(
                    product.code,
                    line.quantity,
                    unit_cost,
                    self._catalog.resolve_tax_rate(product),
                    self.policy.rounding,
                )
            )
        totals = total_lines(priced)
        is_pending = request.settlement == Settlement.PENDING.value

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.PURCHASE_INVOICE, self.policy
        )
        terms = supplier.payment_terms_days
        if terms is None:
            terms = self.policy.payment_terms_days

        purchase = PurchaseInvoice(
            company_code=self.company_code,
            number=number,
            purchase_date=request.purchase_date,
            due_date=request.purchase_date + timedelta(days=terms),
            supplier_id=supplier.id,
            supplier_code=supplier.code,
            supplier_reference=request.supplier_reference,
            settlement=request.settlement,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            balance_due=totals.total_amount if is_pending else ZERO,
            is_voided=False,
            created_by_id=self.actor_id,
        )
        for line_number, line in enumerate(priced, start=1):
            purchase.items.append(
                PurchaseInvoiceItem(
                    company_code=self.company_code,
                    line_number=line_number,
                    product_id=products[line.product_code].id,
                    product_code=line.product_code,
                    quantity=line.quantity,
                    unit_cost=line.unit_price,
                    tax_rate=line.tax_rate,
                    line_total=line.line_total,
                    tax_amount=line.tax_amount,
                    created_by_id=self.actor_id,
                )
            )
        self.session.add(purchase)
        self.session.flush()

        for line in priced:
            product = products[line.product_code]
            product.current_stock += line.quantity
            self._stamp(product)

        if is_pending:
            supplier.outstanding_balance = (
                coerce_money(supplier.outstanding_balance) + totals.total_amount
            )
            self._stamp(supplier)
        elif totals.total_amount > ZERO:
            self._cash.record_outflow(
                CashEntryType.PURCHASE,
                request.purchase_date,
                totals.total_amount,
                f"Purchase invoice {number} - {supplier.name}",
                SOURCE_TYPE,
                purchase.id,
                reference=number,
            )

        check_document_totals(
            number,
            [line.line_total for line in priced],
            [line.tax_amount for line in priced],
            purchase.subtotal,
            purchase.tax_amount,
            purchase.total_amount,
        )
        check_balance_due(number, purchase.balance_due, purchase.total_amount)
        self.session.flush()

        logger.info(
            "purchase_invoice_posted",
            extra={
                "purchase_number": number,
                "supplier_code": supplier.code,
                "settlement": request.settlement,
                "total_amount": totals.total_amount,
            },
        )
        return self._to_dto(purchase)

    def void_purchase(self, purchase_id: UUID, reason: str) -> PurchaseInvoiceInfo:
        """
        Void a purchase invoice.

        Raises:
            InvoiceNotVoidableError: already voided or payments applied.
            StockInsufficientError: the goods are no longer all on hand.
        """
        if not reason or not reason.strip():
            raise ValidationFailedError("reason", "a void reason is required")

        supplier_code = self.get_purchase_row(purchase_id).supplier_code
        supplier = self._parties.lock_supplier(supplier_code, require_active=False)
        purchase = self.lock_purchase(purchase_id)
        if purchase.is_voided:
            raise InvoiceNotVoidableError(purchase.number, "already voided")
        allocated = self.session.execute(
            select(func.count(PaymentAllocation.id)).where(
                PaymentAllocation.purchase_id == purchase.id
            )
        ).scalar_one()
        if allocated:
            raise InvoiceNotVoidableError(purchase.number, "payments have been applied")

        products = self._catalog.lock_products(item.product_code for item in purchase.items)
        for item in purchase.items:
            product = products[item.product_code]
            if product.current_stock < item.quantity:
                raise StockInsufficientError(product.code, item.quantity, product.current_stock)
        for item in purchase.items:
            product = products[item.product_code]
            product.current_stock -= item.quantity
            self._stamp(product)
            check_stock(product.code, product.current_stock)

        total = coerce_money(purchase.total_amount)
        if purchase.settlement == Settlement.PENDING.value:
            supplier.outstanding_balance = (
                coerce_money(supplier.outstanding_balance) - coerce_money(purchase.balance_due)
            )
            self._stamp(supplier)
        elif total > ZERO:
            self._cash.record_inflow(
                CashEntryType.PURCHASE_VOID,
                self.context.clock.today(),
                total,
                f"Void of purchase invoice {purchase.number}: {reason}",
                SOURCE_TYPE,
                purchase.id,
                reference=purchase.number,
            )

        purchase.balance_due = ZERO
        purchase.is_voided = True
        purchase.void_reason = reason
        purchase.voided_at = self.context.clock.now()
        self._stamp(purchase)
        self.session.flush()

        logger.info(
            "purchase_invoice_voided",
            extra={
                "purchase_number": purchase.number,
                "supplier_code": supplier.code,
                "total_amount": total,
                "reason": reason,
            },
        )
        return self._to_dto(purchase)
