"""
Module: erp_kernel.models.party
Responsibility: ORM persistence for customers and suppliers, including the
    incrementally maintained outstanding balance of each.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (company_code, code) unique per party table.
    - outstanding_balance is never recomputed from documents; every posting
      that moves it does so under a row lock in the same transaction as
      the document.  It may go negative (customer credit / supplier advance).

Audit relevance:
    credit_limit and is_active are the admission inputs for sales postings.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import CompanyScopedBase


class Customer(CompanyScopedBase):
    """
    A customer that buys on cash or credit.

    Guarantees:
        - credit_limit of 0 means unlimited.
        - credit_terms_days of None falls back to the company default.
    """

    __tablename__ = "customers"

    __table_args__ = (
        UniqueConstraint("company_code", "code", name="uq_customer_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    credit_limit: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    credit_terms_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    outstanding_balance: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def can_transact(self) -> bool:
        return self.is_active

    def __repr__(self) -> str:
        return f"<Customer {self.code}: {self.name} balance={self.outstanding_balance}>"


class Supplier(CompanyScopedBase):
    """A vendor the company buys stock from."""

    __tablename__ = "suppliers"

    __table_args__ = (
        UniqueConstraint("company_code", "code", name="uq_supplier_code"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(100), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_terms_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    outstanding_balance: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    @property
    def can_transact(self) -> bool:
        return self.is_active

    def __repr__(self) -> str:
        return f"<Supplier {self.code}: {self.name} balance={self.outstanding_balance}>"
