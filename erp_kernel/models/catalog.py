"""
Module: erp_kernel.models.catalog
Responsibility: ORM persistence for the product catalog: tax rates, products
    and the stock adjustment documents that record direct stock edits.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (company_code, code) is unique for products; (company_code, tax_code)
      for tax rates.
    - current_stock >= 0 (ck_product_stock_non_negative).
    - current_stock is only changed by posting services, each change paired
      with a document line (invoice, return, purchase, void or
      StockAdjustment).

Failure modes:
    - IntegrityError on duplicate code (mapped to DuplicateCodeError by
      CatalogService before insert).
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import CompanyScopedBase, UUIDString
from erp_kernel.db.types import Rate


class TaxRate(CompanyScopedBase):
    """
    A named tax percentage (e.g. GST5 = 5.0000 %).

    Contract:
        Products reference a tax rate by tax_code.  The rate in force at
        invoice time is snapshotted onto each invoice line, so later edits
        never change posted documents.
    """

    __tablename__ = "tax_rates"

    __table_args__ = (
        UniqueConstraint("company_code", "tax_code", name="uq_tax_rate_code"),
        CheckConstraint("rate >= 0", name="ck_tax_rate_non_negative"),
    )

    tax_code: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    rate: Mapped[Rate] = mapped_column(nullable=False)
    tax_type: Mapped[str] = mapped_column(String(20), nullable=False, default="GST")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<TaxRate {self.tax_code}: {self.rate}%>"


class Product(CompanyScopedBase):
    """
    A stocked item.

    Contract:
        current_stock is a running quantity maintained incrementally by the
        posting services under a row lock.  Prices here are defaults; every
        document line carries its own snapshot.
    """

    __tablename__ = "products"

    __table_args__ = (
        UniqueConstraint("company_code", "code", name="uq_product_code"),
        CheckConstraint("current_stock >= 0", name="ck_product_stock_non_negative"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    purchase_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    min_stock_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # None means the product is untaxed (0 %)
    tax_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product {self.code}: {self.name} stock={self.current_stock}>"


class StockAdjustment(CompanyScopedBase):
    """A direct stock edit, kept as a document so every stock change is paired."""

    __tablename__ = "stock_adjustments"

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False
    )
    product_code: Mapped[str] = mapped_column(String(50), nullable=False)
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
