"""
PaymentService -- customer receipts and supplier payments.

Responsibility:
    Records money received from customers and paid to suppliers.  Each
    document writes one cash-book entry, moves the party's outstanding
    balance by the full amount, and applies the amount to open invoices
    (the named one, or oldest first when the company policy says so).
    Whatever cannot be applied is kept as ``unallocated_amount``.

Architecture position:
    Kernel > Services.  Called by PostingEngine inside a UnitOfWork.

Invariants enforced:
    BALANCE_DUE_BOUNDS -- allocations never drive balance_due below zero.
    CASH_PAIRING       -- RECEIPT debit / PAYMENT credit of the full amount.
    Lock order         -- party, then invoices by date and number.

Failure modes:
    - CustomerNotFoundError / SupplierNotFoundError.
    - InvoiceNotFoundError / PurchaseInvoiceNotFoundError for an explicit
      target; ValidationFailedError if it belongs to another party or is
      voided.
"""

from __future__ import annotations

from sqlalchemy import select

from erp_kernel.db.types import coerce_money
from erp_kernel.domain.dtos import PaymentInfo, PaymentReceiptRequest, SupplierPaymentRequest
from erp_kernel.domain.policy import DocumentType, ReceiptAllocationMode
from erp_kernel.domain.pricing import allocate_amount
from erp_kernel.exceptions import ValidationFailedError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.payments import (
    PaymentAllocation,
    PaymentReceipt,
    PaymentStatus,
    ReceiptAllocation,
    SupplierPayment,
)
from erp_kernel.models.purchase import PurchaseInvoice
from erp_kernel.models.sales import SalesInvoice
from erp_kernel.services.base import BaseService
from erp_kernel.services.cash_book_service import CashBookService
from erp_kernel.services.invariant_guard import check_balance_due
from erp_kernel.services.party_service import PartyService
from erp_kernel.services.purchase_service import PurchaseService
from erp_kernel.services.sales_invoice_service import SalesInvoiceService
from erp_kernel.services.sequence_service import SequenceService

logger = get_logger("services.payment")

RECEIPT_SOURCE = "PAYMENT_RECEIPT"
PAYMENT_SOURCE = "SUPPLIER_PAYMENT"


class PaymentService(BaseService[PaymentReceipt]):
    """Posts receipts and supplier payments."""

    def __init__(self, session, context):
        super().__init__(session, context)
        self._parties = PartyService(session, context)
        self._invoices = SalesInvoiceService(session, context)
        self._purchases = PurchaseService(session, context)
        self._cash = CashBookService(session, context)
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def _open_sales_invoices(self, customer_code: str) -> list[SalesInvoice]:
        return list(
            self.session.execute(
                select(SalesInvoice)
                .where(
                    SalesInvoice.company_code == self.company_code,
                    SalesInvoice.customer_code == customer_code,
                    SalesInvoice.is_voided.is_(False),
                    SalesInvoice.balance_due > 0,
                )
                .order_by(SalesInvoice.invoice_date, SalesInvoice.number)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def _open_purchases(self, supplier_code: str) -> list[PurchaseInvoice]:
        return list(
            self.session.execute(
                select(PurchaseInvoice)
                .where(
                    PurchaseInvoice.company_code == self.company_code,
                    PurchaseInvoice.supplier_code == supplier_code,
                    PurchaseInvoice.is_voided.is_(False),
                    PurchaseInvoice.balance_due > 0,
                )
                .order_by(PurchaseInvoice.purchase_date, PurchaseInvoice.number)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )

    def _receipt_targets(self, request: PaymentReceiptRequest) -> list[SalesInvoice]:
        if request.invoice_id is not None:
            invoice = self._invoices.lock_invoice(request.invoice_id)
            if invoice.customer_code != request.customer_code:
                raise ValidationFailedError(
                    "invoice_id",
                    f"invoice {invoice.number} does not belong to {request.customer_code}",
                )
            if invoice.is_voided:
                raise ValidationFailedError("invoice_id", f"invoice {invoice.number} is voided")
            return [invoice]
        if self.policy.receipt_allocation is ReceiptAllocationMode.OLDEST_FIRST:
            return self._open_sales_invoices(request.customer_code)
        return []

    def _payment_targets(self, request: SupplierPaymentRequest) -> list[PurchaseInvoice]:
        if request.purchase_id is not None:
            purchase = self._purchases.lock_purchase(request.purchase_id)
            if purchase.supplier_code != request.supplier_code:
                raise ValidationFailedError(
                    "purchase_id",
                    f"purchase {purchase.number} does not belong to {request.supplier_code}",
                )
            if purchase.is_voided:
                raise ValidationFailedError("purchase_id", f"purchase {purchase.number} is voided")
            return [purchase]
        if self.policy.receipt_allocation is ReceiptAllocationMode.OLDEST_FIRST:
            return self._open_purchases(request.supplier_code)
        return []

    # ------------------------------------------------------------------
    # Receipts
    # ------------------------------------------------------------------

    def record_receipt(self, request: PaymentReceiptRequest) -> PaymentInfo:
        """
        Record money received from a customer.

        Postconditions:
            - customer.outstanding_balance -= amount (may go negative).
            - Applied invoices' balance_due reduced, never below zero.
            - One RECEIPT cash debit of the full amount.
        """
        request.validate()

        customer = self._parties.lock_customer(request.customer_code, require_active=False)
        targets = self._receipt_targets(request)
        by_id = {invoice.id: invoice for invoice in targets}
        allocations, unallocated = allocate_amount(
            request.amount,
            [(invoice.id, coerce_money(invoice.balance_due)) for invoice in targets],
        )

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.PAYMENT_RECEIPT, self.policy
        )
        receipt = PaymentReceipt(
            company_code=self.company_code,
            number=number,
            receipt_date=request.receipt_date,
            customer_id=customer.id,
            customer_code=customer.code,
            amount=request.amount,
            unallocated_amount=unallocated,
            payment_method=request.payment_method,
            reference_number=request.reference_number,
            notes=request.notes,
            status=PaymentStatus.COMPLETED.value,
            created_by_id=self.actor_id,
        )
        for invoice_id, applied in allocations:
            invoice = by_id[invoice_id]
            receipt.allocations.append(
                ReceiptAllocation(
                    company_code=self.company_code,
                    invoice_id=invoice.id,
                    invoice_number=invoice.number,
                    amount=applied,
                    created_by_id=self.actor_id,
                )
            )
            invoice.balance_due = coerce_money(invoice.balance_due) - applied
            self._stamp(invoice)
            check_balance_due(invoice.number, invoice.balance_due, coerce_money(invoice.total_amount))
        self.session.add(receipt)
        self.session.flush()

        customer.outstanding_balance = coerce_money(customer.outstanding_balance) - request.amount
        self._stamp(customer)
        self._cash.record_inflow(
            CashEntryType.RECEIPT,
            request.receipt_date,
            request.amount,
            f"Receipt {number} from {customer.name}",
            RECEIPT_SOURCE,
            receipt.id,
            reference=request.reference_number,
        )
        self.session.flush()

        logger.info(
            "payment_receipt_recorded",
            extra={
                "receipt_number": number,
                "customer_code": customer.code,
                "amount": request.amount,
                "allocated_count": len(allocations),
                "unallocated_amount": unallocated,
            },
        )
        return PaymentInfo.from_receipt(receipt)

    # ------------------------------------------------------------------
    # Supplier payments
    # ------------------------------------------------------------------

    def record_supplier_payment(self, request: SupplierPaymentRequest) -> PaymentInfo:
        """Record money paid to a supplier.  Mirror of ``record_receipt``."""
        request.validate()

        supplier = self._parties.lock_supplier(request.supplier_code, require_active=False)
        targets = self._payment_targets(request)
        by_id = {purchase.id: purchase for purchase in targets}
        allocations, unallocated = allocate_amount(
            request.amount,
            [(purchase.id, coerce_money(purchase.balance_due)) for purchase in targets],
        )

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.SUPPLIER_PAYMENT, self.policy
        )
        payment = SupplierPayment(
            company_code=self.company_code,
            number=number,
            payment_date=request.payment_date,
            supplier_id=supplier.id,
            supplier_code=supplier.code,
            amount=request.amount,
            unallocated_amount=unallocated,
            payment_method=request.payment_method,
            reference_number=request.reference_number,
            notes=request.notes,
            status=PaymentStatus.COMPLETED.value,
            created_by_id=self.actor_id,
        )
        for purchase_id, applied in allocations:
            purchase = by_id[purchase_id]
            payment.allocations.append(
                PaymentAllocation(
                    company_code=self.company_code,
                    purchase_id=purchase.id,
                    purchase_number=purchase.number,
                    amount=applied,
                    created_by_id=self.actor_id,
                )
            )
            purchase.balance_due = coerce_money(purchase.balance_due) - applied
            self._stamp(purchase)
            check_balance_due(
                purchase.number, purchase.balance_due, coerce_money(purchase.total_amount)
            )
        self.session.add(payment)
        self.session.flush()

        supplier.outstanding_balance = coerce_money(supplier.outstanding_balance) - request.amount
        self._stamp(supplier)
        self._cash.record_outflow(
            CashEntryType.PAYMENT,
            request.payment_date,
            request.amount,
            f"Payment {number} to {supplier.name}",
            PAYMENT_SOURCE,
            payment.id,
            reference=request.reference_number,
        )
        self.session.flush()

        logger.info(
            "supplier_payment_recorded",
            extra={
                "payment_number": number,
                "supplier_code": supplier.code,
                "amount": request.amount,
                "allocated_count": len(allocations),
                "unallocated_amount": unallocated,
            },
        )
        return PaymentInfo.from_supplier_payment(payment)