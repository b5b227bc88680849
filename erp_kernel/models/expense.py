"""
Module: erp_kernel.models.expense
Responsibility: ORM persistence for expense heads (categories) and expenses
    paid out of the cash book.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (company_code, head_code) unique.  Heads are deactivated, never deleted.
    - amount > 0; remarks required.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import CompanyScopedBase


class ExpenseHead(CompanyScopedBase):
    __tablename__ = "expense_heads"

    __table_args__ = (
        UniqueConstraint("company_code", "head_code", name="uq_expense_head_code"),
    )

    head_code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Expense(CompanyScopedBase):
    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount"),
        Index("idx_expense_date", "company_code", "expense_date"),
    )

    expense_date: Mapped[date] = mapped_column(nullable=False)
    head_code: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    remarks: Mapped[str] = mapped_column(String(500), nullable=False)
