"""
Module: erp_kernel.models.sales
Responsibility: ORM persistence for sales invoices, their lines, and sales
    returns against them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= balance_due <= total_amount (ck_sales_invoice_balance_due).
    - (company_code, number) unique for invoices and returns.
    - Lines snapshot unit_price and tax_rate at posting time; catalog edits
      never change a posted line.
    - Invoices are never deleted.  A void sets is_voided and zeroes
      balance_due; a revision is a new invoice pointing at the voided one.

Audit relevance:
    Status (PAID/PENDING/PARTIAL/OVERDUE/VOID) is derived from these columns
    at read time (domain.status); it is never stored.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import CompanyScopedBase, UUIDString
from erp_kernel.db.types import Rate


class Settlement(str, Enum):
    """How a document is settled at creation time."""

    PAID = "PAID"
    PENDING = "PENDING"


class ReturnStatus(str, Enum):
    COMPLETED = "COMPLETED"


class SalesInvoice(CompanyScopedBase):
    """
    A posted sale of stock to a customer.

    Guarantees:
        - subtotal + tax_amount == total_amount, each the sum of rounded lines.
        - returned_amount accumulates the totals of all returns posted
          against this invoice.
    """

    __tablename__ = "sales_invoices"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_sales_invoice_number"),
        CheckConstraint(
            "balance_due >= 0 AND balance_due <= total_amount",
            name="ck_sales_invoice_balance_due",
        ),
        CheckConstraint(
            "returned_amount >= 0 AND returned_amount <= total_amount",
            name="ck_sales_invoice_returned_amount",
        ),
        Index("idx_sales_invoice_customer", "company_code", "customer_code"),
        Index("idx_sales_invoice_date", "company_code", "invoice_date"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    invoice_date: Mapped[date] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False
    )
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False)

    # Settlement chosen at creation (PAID or PENDING)
    settlement: Mapped[str] = mapped_column(String(20), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(nullable=False)
    returned_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    is_voided: Mapped[bool] = mapped_column(nullable=False, default=False)
    void_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    revises_invoice_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=True
    )

    items: Mapped[list["SalesInvoiceItem"]] = relationship(
        back_populates="invoice",
        order_by="SalesInvoiceItem.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<SalesInvoice {self.number}: {self.total_amount} due={self.balance_due}>"


class SalesInvoiceItem(CompanyScopedBase):
    """One priced line of a sales invoice."""

    __tablename__ = "sales_invoice_items"

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_sales_invoice_line"),
        CheckConstraint("quantity > 0", name="ck_sales_invoice_item_quantity"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False
    )
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Rate] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)

    invoice: Mapped[SalesInvoice] = relationship(back_populates="items")


class SalesReturn(CompanyScopedBase):
    """
    Goods taken back against a sales invoice.

    Guarantees:
        - credit_amount + refund_amount == total_amount.
        - credit_amount reduced the invoice balance and customer balance;
          refund_amount was paid out through the cash book.
    """

    __tablename__ = "sales_returns"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_sales_return_number"),
        Index("idx_sales_return_invoice", "invoice_id"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    return_date: Mapped[date] = mapped_column(nullable=False)
    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False)
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    credit_amount: Mapped[Decimal] = mapped_column(nullable=False)
    refund_amount: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReturnStatus.COMPLETED.value
    )

    items: Mapped[list["SalesReturnItem"]] = relationship(
        back_populates="sales_return",
        order_by="SalesReturnItem.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SalesReturnItem(CompanyScopedBase):
    __tablename__ = "sales_return_items"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_return_item_quantity"),
    )

    return_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_returns.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False
    )
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Rate] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)

    sales_return: Mapped[SalesReturn] = relationship(back_populates="items")
