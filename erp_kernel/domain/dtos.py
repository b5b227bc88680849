"""
DTOs -- immutable requests and results of the posting kernel.

Responsibility:
    Defines the request objects callers hand to the PostingEngine and the
    result objects that services and selectors return.  Requests validate
    everything that needs no database access (``validate()``), so malformed
    input is rejected before a transaction is opened.

Architecture position:
    Kernel > Domain -- free of database access.  ``from_model()`` class
    methods are boundary converters invoked only by services and selectors.

Invariants enforced:
    - Services and selectors return these DTOs, never ORM instances.
    - Invoice status is computed at conversion time from stored balances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from erp_kernel.db.types import coerce_money, coerce_quantity
from erp_kernel.domain.status import (
    InvoiceStatus,
    StockStatus,
    classify_stock,
    derive_invoice_status,
)
from erp_kernel.exceptions import ValidationFailedError

if TYPE_CHECKING:
    from erp_kernel.models.cash_ledger import CashLedgerEntry
    from erp_kernel.models.catalog import Product, StockAdjustment, TaxRate
    from erp_kernel.models.expense import Expense, ExpenseHead
    from erp_kernel.models.loan import Loan, LoanRepayment
    from erp_kernel.models.party import Customer, Supplier
    from erp_kernel.models.payments import PaymentReceipt, SupplierPayment
    from erp_kernel.models.purchase import PurchaseInvoice
    from erp_kernel.models.sales import SalesInvoice, SalesReturn

_SETTLEMENTS = ("PAID", "PENDING")


def _require_lines(lines: tuple, field_name: str = "lines") -> None:
    if not lines:
        raise ValidationFailedError(field_name, "at least one line is required")
    seen: set[str] = set()
    for line in lines:
        if not line.product_code:
            raise ValidationFailedError("product_code", "product code is required")
        if not isinstance(line.quantity, int) or isinstance(line.quantity, bool):
            raise ValidationFailedError("quantity", f"{line.product_code}: quantity must be an integer")
        if line.quantity <= 0:
            raise ValidationFailedError("quantity", f"{line.product_code}: quantity must be > 0")
        if line.product_code in seen:
            raise ValidationFailedError("product_code", f"{line.product_code} appears more than once")
        seen.add(line.product_code)


def _require_amount(amount: Decimal, field_name: str = "amount") -> None:
    if not isinstance(amount, Decimal):
        raise ValidationFailedError(field_name, "amount must be a Decimal")
    if not amount.is_finite() or amount <= 0:
        raise ValidationFailedError(field_name, "amount must be > 0")
    if amount != amount.quantize(Decimal("0.01")):
        raise ValidationFailedError(field_name, "amount has more than 2 decimal places")


def _require_text(value: str | None, field_name: str) -> None:
    if value is None or not value.strip():
        raise ValidationFailedError(field_name, f"{field_name} is required")


# =============================================================================
# Requests
# =============================================================================


@dataclass(frozen=True)
class SalesLineRequest:
    product_code: str
    quantity: int


@dataclass(frozen=True)
class SalesInvoiceRequest:
    customer_code: str
    invoice_date: date
    lines: tuple[SalesLineRequest, ...]
    settlement: str = "PENDING"

    def validate(self) -> None:
        _require_text(self.customer_code, "customer_code")
        if self.settlement not in _SETTLEMENTS:
            raise ValidationFailedError("settlement", f"must be one of {_SETTLEMENTS}")
        _require_lines(self.lines)


@dataclass(frozen=True)
class ReturnLineRequest:
    product_code: str
    quantity: int


@dataclass(frozen=True)
class SalesReturnRequest:
    invoice_id: UUID
    return_date: date
    lines: tuple[ReturnLineRequest, ...]

    def validate(self) -> None:
        _require_lines(self.lines)


@dataclass(frozen=True)
class PurchaseLineRequest:
    product_code: str
    quantity: int
    # None uses the product's purchase price
    unit_cost: Decimal | None = None


@dataclass(frozen=True)
class PurchaseInvoiceRequest:
    supplier_code: str
    purchase_date: date
    lines: tuple[PurchaseLineRequest, ...]
    settlement: str = "PENDING"
    supplier_reference: str | None = None

    def validate(self) -> None:
        _require_text(self.supplier_code, "supplier_code")
        if self.settlement not in _SETTLEMENTS:
            raise ValidationFailedError("settlement", f"must be one of {_SETTLEMENTS}")
        _require_lines(self.lines)
        for line in self.lines:
            if line.unit_cost is not None and line.unit_cost < 0:
                raise ValidationFailedError("unit_cost", f"{line.product_code}: must not be negative")


@dataclass(frozen=True)
class PaymentReceiptRequest:
    customer_code: str
    amount: Decimal
    receipt_date: date
    reference_number: str
    payment_method: str = "CASH"
    invoice_id: UUID | None = None
    notes: str | None = None

    def validate(self) -> None:
        _require_text(self.customer_code, "customer_code")
        _require_amount(self.amount)
        _require_text(self.reference_number, "reference_number")
        _require_text(self.payment_method, "payment_method")


@dataclass(frozen=True)
class SupplierPaymentRequest:
    supplier_code: str
    amount: Decimal
    payment_date: date
    reference_number: str
    payment_method: str = "CASH"
    purchase_id: UUID | None = None
    notes: str | None = None

    def validate(self) -> None:
        _require_text(self.supplier_code, "supplier_code")
        _require_amount(self.amount)
        _require_text(self.reference_number, "reference_number")
        _require_text(self.payment_method, "payment_method")


@dataclass(frozen=True)
class ExpenseRequest:
    head_code: str
    amount: Decimal
    expense_date: date
    remarks: str

    def validate(self) -> None:
        _require_text(self.head_code, "head_code")
        _require_amount(self.amount)
        _require_text(self.remarks, "remarks")


@dataclass(frozen=True)
class LoanRequest:
    lender_name: str
    amount: Decimal
    loan_date: date
    interest_rate: Decimal = Decimal("0")
    term_months: int | None = None

    def validate(self) -> None:
        _require_text(self.lender_name, "lender_name")
        _require_amount(self.amount)
        if not isinstance(self.interest_rate, Decimal) or self.interest_rate < 0:
            raise ValidationFailedError("interest_rate", "must be a non-negative Decimal")
        if self.term_months is not None and self.term_months <= 0:
            raise ValidationFailedError("term_months", "must be > 0")


@dataclass(frozen=True)
class LoanRepaymentRequest:
    loan_id: UUID
    amount: Decimal
    repayment_date: date
    reference_number: str
    payment_method: str = "CASH"

    def validate(self) -> None:
        if self.loan_id is None:
            raise ValidationFailedError("loan_id", "loan_id is required")
        _require_amount(self.amount)
        _require_text(self.reference_number, "reference_number")
        _require_text(self.payment_method, "payment_method")


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class DocumentLineInfo:
    line_number: int
    product_code: str
    quantity: int
    unit_price: Decimal
    tax_rate: Decimal
    line_total: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class SalesInvoiceInfo:
    id: UUID
    company_code: str
    number: str
    invoice_date: date
    due_date: date
    customer_code: str
    settlement: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    balance_due: Decimal
    returned_amount: Decimal
    status: InvoiceStatus
    is_voided: bool
    void_reason: str | None
    revises_invoice_id: UUID | None
    lines: tuple[DocumentLineInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, invoice: SalesInvoice, as_of: date | None = None) -> SalesInvoiceInfo:
        total = coerce_money(invoice.total_amount)
        balance_due = coerce_money(invoice.balance_due)
        returned = coerce_money(invoice.returned_amount)
        return cls(
            id=invoice.id,
            company_code=invoice.company_code,
            number=invoice.number,
            invoice_date=invoice.invoice_date,
            due_date=invoice.due_date,
            customer_code=invoice.customer_code,
            settlement=invoice.settlement,
            subtotal=coerce_money(invoice.subtotal),
            tax_amount=coerce_money(invoice.tax_amount),
            total_amount=total,
            balance_due=balance_due,
            returned_amount=returned,
            status=derive_invoice_status(
                total, balance_due, returned, invoice.due_date, as_of, invoice.is_voided
            ),
            is_voided=invoice.is_voided,
            void_reason=invoice.void_reason,
            revises_invoice_id=invoice.revises_invoice_id,
            lines=tuple(
                DocumentLineInfo(
                    line_number=item.line_number,
                    product_code=item.product_code,
                    quantity=coerce_quantity(item.quantity),
                    unit_price=coerce_money(item.unit_price),
                    tax_rate=Decimal(str(item.tax_rate)),
                    line_total=coerce_money(item.line_total),
                    tax_amount=coerce_money(item.tax_amount),
                )
                for item in invoice.items
            ),
        )


@dataclass(frozen=True)
class SalesReturnInfo:
    id: UUID
    number: str
    return_date: date
    invoice_id: UUID
    invoice_number: str
    customer_code: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    credit_amount: Decimal
    refund_amount: Decimal
    status: str
    lines: tuple[DocumentLineInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, sales_return: SalesReturn) -> SalesReturnInfo:
        return cls(
            id=sales_return.id,
            number=sales_return.number,
            return_date=sales_return.return_date,
            invoice_id=sales_return.invoice_id,
            invoice_number=sales_return.invoice_number,
            customer_code=sales_return.customer_code,
            subtotal=coerce_money(sales_return.subtotal),
            tax_amount=coerce_money(sales_return.tax_amount),
            total_amount=coerce_money(sales_return.total_amount),
            credit_amount=coerce_money(sales_return.credit_amount),
            refund_amount=coerce_money(sales_return.refund_amount),
            status=sales_return.status,
            lines=tuple(
                DocumentLineInfo(
                    line_number=item.line_number,
                    product_code=item.product_code,
                    quantity=coerce_quantity(item.quantity),
                    unit_price=coerce_money(item.unit_price),
                    tax_rate=Decimal(str(item.tax_rate)),
                    line_total=coerce_money(item.line_total),
                    tax_amount=coerce_money(item.tax_amount),
                )
                for item in sales_return.items
            ),
        )


@dataclass(frozen=True)
class PurchaseInvoiceInfo:
    id: UUID
    company_code: str
    number: str
    purchase_date: date
    due_date: date
    supplier_code: str
    supplier_reference: str | None
    settlement: str
    subtotal: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    balance_due: Decimal
    status: InvoiceStatus
    is_voided: bool
    lines: tuple[DocumentLineInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(
        cls, purchase: PurchaseInvoice, as_of: date | None = None
    ) -> PurchaseInvoiceInfo:
        total = coerce_money(purchase.total_amount)
        balance_due = coerce_money(purchase.balance_due)
        return cls(
            id=purchase.id,
            company_code=purchase.company_code,
            number=purchase.number,
            purchase_date=purchase.purchase_date,
            due_date=purchase.due_date,
            supplier_code=purchase.supplier_code,
            supplier_reference=purchase.supplier_reference,
            settlement=purchase.settlement,
            subtotal=coerce_money(purchase.subtotal),
            tax_amount=coerce_money(purchase.tax_amount),
            total_amount=total,
            balance_due=balance_due,
            status=derive_invoice_status(
                total, balance_due, Decimal("0"), purchase.due_date, as_of, purchase.is_voided
            ),
            is_voided=purchase.is_voided,
            lines=tuple(
                DocumentLineInfo(
                    line_number=item.line_number,
                    product_code=item.product_code,
                    quantity=coerce_quantity(item.quantity),
                    unit_price=coerce_money(item.unit_cost),
                    tax_rate=Decimal(str(item.tax_rate)),
                    line_total=coerce_money(item.line_total),
                    tax_amount=coerce_money(item.tax_amount),
                )
                for item in purchase.items
            ),
        )


@dataclass(frozen=True)
class AllocationInfo:
    document_id: UUID
    document_number: str
    amount: Decimal


@dataclass(frozen=True)
class PaymentInfo:
    """A customer receipt or a supplier payment."""

    id: UUID
    number: str
    payment_date: date
    party_code: str
    amount: Decimal
    unallocated_amount: Decimal
    payment_method: str
    reference_number: str
    status: str
    allocations: tuple[AllocationInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_receipt(cls, receipt: PaymentReceipt) -> PaymentInfo:
        return cls(
            id=receipt.id,
            number=receipt.number,
            payment_date=receipt.receipt_date,
            party_code=receipt.customer_code,
            amount=coerce_money(receipt.amount),
            unallocated_amount=coerce_money(receipt.unallocated_amount),
            payment_method=receipt.payment_method,
            reference_number=receipt.reference_number,
            status=receipt.status,
            allocations=tuple(
                AllocationInfo(a.invoice_id, a.invoice_number, coerce_money(a.amount))
                for a in receipt.allocations
            ),
        )

    @classmethod
    def from_supplier_payment(cls, payment: SupplierPayment) -> PaymentInfo:
        return cls(
            id=payment.id,
            number=payment.number,
            payment_date=payment.payment_date,
            party_code=payment.supplier_code,
            amount=coerce_money(payment.amount),
            unallocated_amount=coerce_money(payment.unallocated_amount),
            payment_method=payment.payment_method,
            reference_number=payment.reference_number,
            status=payment.status,
            allocations=tuple(
                AllocationInfo(a.purchase_id, a.purchase_number, coerce_money(a.amount))
                for a in payment.allocations
            ),
        )


@dataclass(frozen=True)
class ExpenseInfo:
    id: UUID
    expense_date: date
    head_code: str
    amount: Decimal
    remarks: str

    @classmethod
    def from_model(cls, expense: Expense) -> ExpenseInfo:
        return cls(
            id=expense.id,
            expense_date=expense.expense_date,
            head_code=expense.head_code,
            amount=coerce_money(expense.amount),
            remarks=expense.remarks,
        )


@dataclass(frozen=True)
class LoanRepaymentInfo:
    id: UUID
    number: str
    loan_id: UUID
    repayment_date: date
    amount: Decimal
    payment_method: str
    reference_number: str

    @classmethod
    def from_model(cls, repayment: LoanRepayment) -> LoanRepaymentInfo:
        return cls(
            id=repayment.id,
            number=repayment.number,
            loan_id=repayment.loan_id,
            repayment_date=repayment.repayment_date,
            amount=coerce_money(repayment.amount),
            payment_method=repayment.payment_method,
            reference_number=repayment.reference_number,
        )


@dataclass(frozen=True)
class LoanInfo:
    """A loan with its repayments; outstanding = amount - repaid."""

    id: UUID
    number: str
    loan_date: date
    lender_name: str
    amount: Decimal
    interest_rate: Decimal
    term_months: int | None
    repaid_amount: Decimal
    outstanding_amount: Decimal
    repayments: tuple[LoanRepaymentInfo, ...] = field(default_factory=tuple)

    @classmethod
    def from_model(cls, loan: Loan) -> LoanInfo:
        amount = coerce_money(loan.amount)
        repaid = coerce_money(loan.repaid_amount)
        return cls(
            id=loan.id,
            number=loan.number,
            loan_date=loan.loan_date,
            lender_name=loan.lender_name,
            amount=amount,
            interest_rate=Decimal(str(loan.interest_rate)),
            term_months=loan.term_months,
            repaid_amount=repaid,
            outstanding_amount=amount - repaid,
            repayments=tuple(LoanRepaymentInfo.from_model(r) for r in loan.repayments),
        )


@dataclass(frozen=True)
class CashEntryInfo:
    id: UUID
    entry_date: date
    entry_type: str
    description: str
    debit_amount: Decimal
    credit_amount: Decimal
    source_type: str
    source_id: UUID
    reference: str | None

    @classmethod
    def from_model(cls, entry: CashLedgerEntry) -> CashEntryInfo:
        return cls(
            id=entry.id,
            entry_date=entry.entry_date,
            entry_type=entry.entry_type,
            description=entry.description,
            debit_amount=coerce_money(entry.debit_amount),
            credit_amount=coerce_money(entry.credit_amount),
            source_type=entry.source_type,
            source_id=entry.source_id,
            reference=entry.reference,
        )


@dataclass(frozen=True)
class ProductInfo:
    id: UUID
    code: str
    name: str
    category_code: str | None
    unit_price: Decimal
    purchase_price: Decimal
    current_stock: int
    min_stock_level: int
    tax_code: str | None
    is_active: bool
    stock_status: StockStatus

    @classmethod
    def from_model(cls, product: Product) -> ProductInfo:
        current = coerce_quantity(product.current_stock)
        minimum = coerce_quantity(product.min_stock_level)
        return cls(
            id=product.id,
            code=product.code,
            name=product.name,
            category_code=product.category_code,
            unit_price=coerce_money(product.unit_price),
            purchase_price=coerce_money(product.purchase_price),
            current_stock=current,
            min_stock_level=minimum,
            tax_code=product.tax_code,
            is_active=product.is_active,
            stock_status=classify_stock(current, minimum),
        )


@dataclass(frozen=True)
class StockAdjustmentInfo:
    id: UUID
    product_code: str
    quantity_before: int
    quantity_after: int
    quantity_delta: int
    reason: str

    @classmethod
    def from_model(cls, adjustment: StockAdjustment) -> StockAdjustmentInfo:
        return cls(
            id=adjustment.id,
            product_code=adjustment.product_code,
            quantity_before=adjustment.quantity_before,
            quantity_after=adjustment.quantity_after,
            quantity_delta=adjustment.quantity_delta,
            reason=adjustment.reason,
        )


@dataclass(frozen=True)
class TaxRateInfo:
    id: UUID
    tax_code: str
    name: str
    rate: Decimal
    tax_type: str
    is_active: bool

    @classmethod
    def from_model(cls, tax_rate: TaxRate) -> TaxRateInfo:
        return cls(
            id=tax_rate.id,
            tax_code=tax_rate.tax_code,
            name=tax_rate.name,
            rate=Decimal(str(tax_rate.rate)),
            tax_type=tax_rate.tax_type,
            is_active=tax_rate.is_active,
        )


@dataclass(frozen=True)
class CustomerInfo:
    id: UUID
    code: str
    name: str
    city: str | None
    phone: str | None
    credit_limit: Decimal
    credit_terms_days: int | None
    outstanding_balance: Decimal
    is_active: bool

    @classmethod
    def from_model(cls, customer: Customer) -> CustomerInfo:
        return cls(
            id=customer.id,
            code=customer.code,
            name=customer.name,
            city=customer.city,
            phone=customer.phone,
            credit_limit=coerce_money(customer.credit_limit),
            credit_terms_days=customer.credit_terms_days,
            outstanding_balance=coerce_money(customer.outstanding_balance),
            is_active=customer.is_active,
        )


@dataclass(frozen=True)
class SupplierInfo:
    id: UUID
    code: str
    name: str
    contact_person: str | None
    city: str | None
    phone: str | None
    payment_terms_days: int | None
    outstanding_balance: Decimal
    is_active: bool

    @classmethod
    def from_model(cls, supplier: Supplier) -> SupplierInfo:
        return cls(
            id=supplier.id,
            code=supplier.code,
            name=supplier.name,
            contact_person=supplier.contact_person,
            city=supplier.city,
            phone=supplier.phone,
            payment_terms_days=supplier.payment_terms_days,
            outstanding_balance=coerce_money(supplier.outstanding_balance),
            is_active=supplier.is_active,
        )


@dataclass(frozen=True)
class ExpenseHeadInfo:
    id: UUID
    head_code: str
    name: str
    description: str | None
    is_active: bool

    @classmethod
    def from_model(cls, head: ExpenseHead) -> ExpenseHeadInfo:
        return cls(
            id=head.id,
            head_code=head.head_code,
            name=head.name,
            description=head.description,
            is_active=head.is_active,
        )
