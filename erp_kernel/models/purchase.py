"""
Module: erp_kernel.models.purchase
Responsibility: ORM persistence for purchase invoices (stock bought from
    suppliers) and their lines.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= balance_due <= total_amount (ck_purchase_invoice_balance_due).
    - (company_code, number) unique.
    - Lines snapshot unit cost and tax rate at posting time.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import CompanyScopedBase, UUIDString
from erp_kernel.db.types import Rate


class PurchaseInvoice(CompanyScopedBase):
    """A posted purchase of stock from a supplier."""

    __tablename__ = "purchase_invoices"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_purchase_invoice_number"),
        CheckConstraint(
            "balance_due >= 0 AND balance_due <= total_amount",
            name="ck_purchase_invoice_balance_due",
        ),
        Index("idx_purchase_invoice_supplier", "company_code", "supplier_code"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    purchase_date: Mapped[date] = mapped_column(nullable=False)
    due_date: Mapped[date] = mapped_column(nullable=False)

    supplier_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("suppliers.id"), nullable=False
    )
    supplier_code: Mapped[str] = mapped_column(String(50), nullable=False)
    supplier_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    settlement: Mapped[str] = mapped_column(String(20), nullable=False)

    subtotal: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_due: Mapped[Decimal] = mapped_column(nullable=False)

    is_voided: Mapped[bool] = mapped_column(nullable=False, default=False)
    void_reason: Mapped[str | None] = mapped_column(String(255), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    items: Mapped[list["PurchaseInvoiceItem"]] = relationship(
        back_populates="purchase",
        order_by="PurchaseInvoiceItem.line_number",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PurchaseInvoice {self.number}: {self.total_amount}>"


class PurchaseInvoiceItem(CompanyScopedBase):
    __tablename__ = "purchase_invoice_items"

    __table_args__ = (
        UniqueConstraint("purchase_id", "line_number", name="uq_purchase_invoice_line"),
        CheckConstraint("quantity > 0", name="ck_purchase_invoice_item_quantity"),
    )

    purchase_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_invoices.id"), nullable=False
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False
    )
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)
    tax_rate: Mapped[Rate] = mapped_column(nullable=False)
    line_total: Mapped[Decimal] = mapped_column(nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(nullable=False)

    purchase: Mapped[PurchaseInvoice] = relationship(back_populates="items")
