"""
Module: erp_kernel.models.payments
Responsibility: ORM persistence for customer receipts, supplier payments and
    the allocation rows that apply them to open invoices.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 and reference_number is required on every payment document.
    - Sum of allocations + unallocated_amount == amount.
    - Allocations never drive an invoice's balance_due below zero (enforced
      by PaymentService and the invoice check constraint).
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import CompanyScopedBase, UUIDString


class PaymentStatus(str, Enum):
    COMPLETED = "COMPLETED"


class PaymentReceipt(CompanyScopedBase):
    """Money received from a customer."""

    __tablename__ = "payment_receipts"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_payment_receipt_number"),
        CheckConstraint("amount > 0", name="ck_payment_receipt_amount"),
        Index("idx_payment_receipt_customer", "company_code", "customer_code"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    receipt_date: Mapped[date] = mapped_column(nullable=False)
    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False
    )
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    unallocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.COMPLETED.value
    )

    allocations: Mapped[list["ReceiptAllocation"]] = relationship(
        back_populates="receipt",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ReceiptAllocation(CompanyScopedBase):
    """Part of a receipt applied to one sales invoice."""

    __tablename__ = "receipt_allocations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_receipt_allocation_amount"),
        Index("idx_receipt_allocation_invoice", "invoice_id"),
    )

    receipt_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("payment_receipts.id"), nullable=False
    )
    invoice_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("sales_invoices.id"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    receipt: Mapped[PaymentReceipt] = relationship(back_populates="allocations")


class SupplierPayment(CompanyScopedBase):
    """Money paid to a supplier."""

    __tablename__ = "supplier_payments"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_supplier_payment_number"),
        CheckConstraint("amount > 0", name="ck_supplier_payment_amount"),
        Index("idx_supplier_payment_supplier", "company_code", "supplier_code"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_date: Mapped[date] = mapped_column(nullable=False)
    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False
    )
    supplier_code: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    unallocated_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.COMPLETED.value
    )

    allocations: Mapped[list["PaymentAllocation"]] = relationship(
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class PaymentAllocation(CompanyScopedBase):
    """Part of a supplier payment applied to one purchase invoice."""

    __tablename__ = "payment_allocations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_allocation_amount"),
        Index("idx_payment_allocation_purchase", "purchase_id"),
    )

    payment_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("supplier_payments.id"), nullable=False
    )
    purchase_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), nullable=False
    )
    purchase_number: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    payment: Mapped[SupplierPayment] = relationship(back_populates="allocations")
