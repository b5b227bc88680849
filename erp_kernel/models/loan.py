"""
Module: erp_kernel.models.loan
Responsibility: ORM persistence for loans taken by the company and the
    repayments made against them.  Both move cash: a loan is money in, a
    repayment is money out.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 on loans and repayments.
    - 0 <= repaid_amount <= amount (ck_loan_repaid_range); repayments never
      exceed what is outstanding.
    - (company_code, number) unique for both tables.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from erp_kernel.db.base import CompanyScopedBase, UUIDString
from erp_kernel.db.types import Rate


class Loan(CompanyScopedBase):
    """Money borrowed from a lender."""

    __tablename__ = "loans"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_loan_number"),
        CheckConstraint("amount > 0", name="ck_loan_amount"),
        CheckConstraint(
            "repaid_amount >= 0 AND repaid_amount <= amount", name="ck_loan_repaid_range"
        ),
        Index("idx_loan_date", "company_code", "loan_date"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    loan_date: Mapped[date] = mapped_column(nullable=False)
    lender_name: Mapped[str] = mapped_column(String(200), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    interest_rate: Mapped[Rate] = mapped_column(nullable=False, default=Decimal("0"))
    term_months: Mapped[int | None] = mapped_column(Integer, nullable=True)
    repaid_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    repayments: Mapped[list["LoanRepayment"]] = relationship(
        back_populates="loan",
        order_by="LoanRepayment.number",
        lazy="selectin",
    )

    @property
    def outstanding_amount(self) -> Decimal:
        return Decimal(str(self.amount)) - Decimal(str(self.repaid_amount))

    def __repr__(self) -> str:
        return f"<Loan {self.number}: {self.lender_name} {self.amount} repaid={self.repaid_amount}>"


class LoanRepayment(CompanyScopedBase):
    __tablename__ = "loan_repayments"

    __table_args__ = (
        UniqueConstraint("company_code", "number", name="uq_loan_repayment_number"),
        CheckConstraint("amount > 0", name="ck_loan_repayment_amount"),
    )

    number: Mapped[str] = mapped_column(String(30), nullable=False)
    loan_id: Mapped[UUID] = mapped_column(UUIDString(), ForeignKey("loans.id"), nullable=False)
    repayment_date: Mapped[date] = mapped_column(nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    reference_number: Mapped[str] = mapped_column(String(100), nullable=False)

    loan: Mapped[Loan] = relationship(back_populates="repayments")
