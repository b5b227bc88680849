"""
LoanService -- posts loans taken and their repayments through the cash book.

Responsibility:
    A loan brings money in (one RECEIPT debit); each repayment pays money
    out (one PAYMENT credit) and reduces what is still owed.

Architecture position:
    Kernel > Services.  Called by PostingEngine inside a UnitOfWork.

Invariants enforced:
    - One cash entry per loan and per repayment.
    - repaid_amount never exceeds the loan amount; the loan row is locked
      before the outstanding amount is checked.

Failure modes:
    - LoanNotFoundError: unknown loan id in this company.
    - LoanOverRepaymentError: repayment larger than the outstanding amount.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from erp_kernel.db.types import ZERO, coerce_money
from erp_kernel.domain.dtos import LoanInfo, LoanRepaymentRequest, LoanRequest
from erp_kernel.domain.policy import DocumentType
from erp_kernel.exceptions import LoanNotFoundError, LoanOverRepaymentError
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.loan import Loan, LoanRepayment
from erp_kernel.services.base import BaseService
from erp_kernel.services.cash_book_service import CashBookService
from erp_kernel.services.sequence_service import SequenceService

logger = get_logger("services.loan")

LOAN_SOURCE_TYPE = "LOAN"
REPAYMENT_SOURCE_TYPE = "LOAN_REPAYMENT"


class LoanService(BaseService[Loan]):

    def __init__(self, session, context):
        super().__init__(session, context)
        self._cash = CashBookService(session, context)
        self._sequences = SequenceService(session)

    def lock_loan(self, loan_id: UUID) -> Loan:
        loan = self.session.execute(
            select(Loan)
            .where(Loan.company_code == self.company_code, Loan.id == loan_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if loan is None:
            raise LoanNotFoundError(str(loan_id), self.company_code)
        return loan

    def record_loan(self, request: LoanRequest) -> LoanInfo:
        request.validate()
        number = self._sequences.next_document_number(
            self.company_code, DocumentType.LOAN, self.policy
        )
        loan = Loan(
            company_code=self.company_code,
            number=number,
            loan_date=request.loan_date,
            lender_name=request.lender_name,
            amount=request.amount,
            interest_rate=request.interest_rate,
            term_months=request.term_months,
            repaid_amount=ZERO,
            created_by_id=self.actor_id,
        )
        self.session.add(loan)
        self.session.flush()

        self._cash.record_inflow(
            CashEntryType.RECEIPT,
            request.loan_date,
            request.amount,
            f"Loan from {request.lender_name}",
            LOAN_SOURCE_TYPE,
            loan.id,
            reference=number,
        )
        logger.info(
            "loan_recorded",
            extra={"loan_number": number, "lender_name": request.lender_name, "amount": request.amount},
        )
        return LoanInfo.from_model(loan)

    def record_loan_repayment(self, request: LoanRepaymentRequest) -> LoanInfo:
        """
        Repay part or all of a loan.

        Returns the loan after the repayment, including every repayment so far.
        """
        request.validate()
        loan = self.lock_loan(request.loan_id)
        outstanding = coerce_money(loan.amount) - coerce_money(loan.repaid_amount)
        if request.amount > outstanding:
            raise LoanOverRepaymentError(loan.number, outstanding, request.amount)

        number = self._sequences.next_document_number(
            self.company_code, DocumentType.LOAN_REPAYMENT, self.policy
        )
        repayment = LoanRepayment(
            company_code=self.company_code,
            number=number,
            repayment_date=request.repayment_date,
            amount=request.amount,
            payment_method=request.payment_method,
            reference_number=request.reference_number,
            created_by_id=self.actor_id,
        )
        loan.repayments.append(repayment)
        loan.repaid_amount = coerce_money(loan.repaid_amount) + request.amount
        self._stamp(loan)
        self.session.flush()

        self._cash.record_outflow(
            CashEntryType.PAYMENT,
            request.repayment_date,
            request.amount,
            f"Loan repayment {number} on {loan.number}",
            REPAYMENT_SOURCE_TYPE,
            repayment.id,
            reference=request.reference_number,
        )
        logger.info(
            "loan_repayment_recorded",
            extra={
                "loan_number": loan.number,
                "repayment_number": number,
                "amount": request.amount,
                "outstanding_amount": outstanding - request.amount,
            },
        )
        return LoanInfo.from_model(loan)
