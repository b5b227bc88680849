"""
Module: erp_kernel.selectors.document_selector
Responsibility: Paginated listings and single reads of posted documents:
    sales invoices, sales returns, purchase invoices, customer receipts,
    supplier payments, expenses and loans.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Invoice status is derived at read time as of the selector clock's
      today (or an explicit ``as_of``); it is never read from a column.
    - Default ordering is date DESC then number DESC; the id column breaks
      any remaining ties so paging is stable.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select

from erp_kernel.domain.dtos import (
    ExpenseInfo,
    LoanInfo,
    PaymentInfo,
    PurchaseInvoiceInfo,
    SalesInvoiceInfo,
    SalesReturnInfo,
)
from erp_kernel.exceptions import (
    InvoiceNotFoundError,
    LoanNotFoundError,
    PurchaseInvoiceNotFoundError,
)
from erp_kernel.models.expense import Expense
from erp_kernel.models.loan import Loan
from erp_kernel.models.payments import PaymentReceipt, SupplierPayment
from erp_kernel.models.purchase import PurchaseInvoice
from erp_kernel.models.sales import SalesInvoice, SalesReturn
from erp_kernel.selectors.base import BaseSelector, Page


class DocumentSelector(BaseSelector[SalesInvoice]):
    """Selector for posted documents."""

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def list_sales_invoices(
        self,
        page: int = 1,
        page_size: int | None = None,
        customer_code: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        open_only: bool = False,
        include_voided: bool = True,
        as_of: date | None = None,
    ) -> Page[SalesInvoiceInfo]:
        """
        List sales invoices with their lines and derived status.

        Args:
            open_only: Only invoices with balance_due > 0.
            as_of: Date used for OVERDUE; defaults to the clock's today.
        """
        today = self._today(as_of)
        stmt = select(SalesInvoice).where(SalesInvoice.company_code == self.company_code)
        if customer_code is not None:
            stmt = stmt.where(SalesInvoice.customer_code == customer_code)
        if date_from is not None:
            stmt = stmt.where(SalesInvoice.invoice_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(SalesInvoice.invoice_date <= date_to)
        if open_only:
            stmt = stmt.where(SalesInvoice.balance_due > 0)
        if not include_voided:
            stmt = stmt.where(SalesInvoice.is_voided.is_(False))
        stmt = stmt.order_by(
            SalesInvoice.invoice_date.desc(),
            SalesInvoice.number.desc(),
            SalesInvoice.id,
        )
        return self._paginate(
            stmt, lambda row: SalesInvoiceInfo.from_model(row, as_of=today), page, page_size
        )

    def get_sales_invoice(self, invoice_id: UUID, as_of: date | None = None) -> SalesInvoiceInfo:
        invoice = self.session.execute(
            select(SalesInvoice).where(
                SalesInvoice.company_code == self.company_code,
                SalesInvoice.id == invoice_id,
            )
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(str(invoice_id), self.company_code)
        return SalesInvoiceInfo.from_model(invoice, as_of=self._today(as_of))

    def get_sales_invoice_by_number(
        self, number: str, as_of: date | None = None
    ) -> SalesInvoiceInfo:
        invoice = self.session.execute(
            select(SalesInvoice).where(
                SalesInvoice.company_code == self.company_code,
                SalesInvoice.number == number,
            )
        ).scalar_one_or_none()
        if invoice is None:
            raise InvoiceNotFoundError(number, self.company_code)
        return SalesInvoiceInfo.from_model(invoice, as_of=self._today(as_of))

    def list_sales_returns(
        self,
        page: int = 1,
        page_size: int | None = None,
        invoice_id: UUID | None = None,
        customer_code: str | None = None,
    ) -> Page[SalesReturnInfo]:
        stmt = select(SalesReturn).where(SalesReturn.company_code == self.company_code)
        if invoice_id is not None:
            stmt = stmt.where(SalesReturn.invoice_id == invoice_id)
        if customer_code is not None:
            stmt = stmt.where(SalesReturn.customer_code == customer_code)
        stmt = stmt.order_by(
            SalesReturn.return_date.desc(), SalesReturn.number.desc(), SalesReturn.id
        )
        return self._paginate(stmt, SalesReturnInfo.from_model, page, page_size)

    # ------------------------------------------------------------------
    # Purchases
    # ------------------------------------------------------------------

    def list_purchase_invoices(
        self,
        page: int = 1,
        page_size: int | None = None,
        supplier_code: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        open_only: bool = False,
        include_voided: bool = True,
        as_of: date | None = None,
    ) -> Page[PurchaseInvoiceInfo]:
        today = self._today(as_of)
        stmt = select(PurchaseInvoice).where(PurchaseInvoice.company_code == self.company_code)
        if supplier_code is not None:
            stmt = stmt.where(PurchaseInvoice.supplier_code == supplier_code)
        if date_from is not None:
            stmt = stmt.where(PurchaseInvoice.purchase_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(PurchaseInvoice.purchase_date <= date_to)
        if open_only:
            stmt = stmt.where(PurchaseInvoice.balance_due > 0)
        if not include_voided:
            stmt = stmt.where(PurchaseInvoice.is_voided.is_(False))
        stmt = stmt.order_by(
            PurchaseInvoice.purchase_date.desc(),
            PurchaseInvoice.number.desc(),
            PurchaseInvoice.id,
        )
        return self._paginate(
            stmt, lambda row: PurchaseInvoiceInfo.from_model(row, as_of=today), page, page_size
        )

    def get_purchase_invoice(
        self, purchase_id: UUID, as_of: date | None = None
    ) -> PurchaseInvoiceInfo:
        purchase = self.session.execute(
            select(PurchaseInvoice).where(
                PurchaseInvoice.company_code == self.company_code,
                PurchaseInvoice.id == purchase_id,
            )
        ).scalar_one_or_none()
        if purchase is None:
            raise PurchaseInvoiceNotFoundError(str(purchase_id), self.company_code)
        return PurchaseInvoiceInfo.from_model(purchase, as_of=self._today(as_of))

    # ------------------------------------------------------------------
    # Payments and expenses
    # ------------------------------------------------------------------

    def list_receipts(
        self,
        page: int = 1,
        page_size: int | None = None,
        customer_code: str | None = None,
    ) -> Page[PaymentInfo]:
        stmt = select(PaymentReceipt).where(PaymentReceipt.company_code == self.company_code)
        if customer_code is not None:
            stmt = stmt.where(PaymentReceipt.customer_code == customer_code)
        stmt = stmt.order_by(
            PaymentReceipt.receipt_date.desc(), PaymentReceipt.number.desc(), PaymentReceipt.id
        )
        return self._paginate(stmt, PaymentInfo.from_receipt, page, page_size)

    def list_supplier_payments(
        self,
        page: int = 1,
        page_size: int | None = None,
        supplier_code: str | None = None,
    ) -> Page[PaymentInfo]:
        stmt = select(SupplierPayment).where(SupplierPayment.company_code == self.company_code)
        if supplier_code is not None:
            stmt = stmt.where(SupplierPayment.supplier_code == supplier_code)
        stmt = stmt.order_by(
            SupplierPayment.payment_date.desc(),
            SupplierPayment.number.desc(),
            SupplierPayment.id,
        )
        return self._paginate(stmt, PaymentInfo.from_supplier_payment, page, page_size)

    def list_expenses(
        self,
        page: int = 1,
        page_size: int | None = None,
        head_code: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> Page[ExpenseInfo]:
        stmt = select(Expense).where(Expense.company_code == self.company_code)
        if head_code is not None:
            stmt = stmt.where(Expense.head_code == head_code)
        if date_from is not None:
            stmt = stmt.where(Expense.expense_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Expense.expense_date <= date_to)
        stmt = stmt.order_by(Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id)
        return self._paginate(stmt, ExpenseInfo.from_model, page, page_size)

    # ------------------------------------------------------------------
    # Loans
    # ------------------------------------------------------------------

    def list_loans(
        self,
        page: int = 1,
        page_size: int | None = None,
        open_only: bool = False,
    ) -> Page[LoanInfo]:
        """Loans newest first, each with its repayments."""
        stmt = select(Loan).where(Loan.company_code == self.company_code)
        if open_only:
            stmt = stmt.where(Loan.repaid_amount < Loan.amount)
        stmt = stmt.order_by(Loan.loan_date.desc(), Loan.number.desc(), Loan.id)
        return self._paginate(stmt, LoanInfo.from_model, page, page_size)

    def get_loan(self, loan_id: UUID) -> LoanInfo:
        loan = self.session.execute(
            select(Loan).where(Loan.company_code == self.company_code, Loan.id == loan_id)
        ).scalar_one_or_none()
        if loan is None:
            raise LoanNotFoundError(str(loan_id), self.company_code)
        return LoanInfo.from_model(loan)
