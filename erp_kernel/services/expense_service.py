"""
Service layer for expense heads and cash expenses.

An expense is paid out of the cash book: every recorded expense writes one
EXPENSE credit entry in the same transaction.  Heads are never deleted, only
deactivated, so historical expenses keep a valid category.
"""

from __future__ import annotations

from sqlalchemy import select

from erp_kernel.domain.dtos import ExpenseHeadInfo, ExpenseInfo, ExpenseRequest
from erp_kernel.exceptions import (
    DuplicateCodeError,
    ExpenseHeadInactiveError,
    ExpenseHeadNotFoundError,
    ValidationFailedError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.cash_ledger import CashEntryType
from erp_kernel.models.expense import Expense, ExpenseHead
from erp_kernel.services.base import BaseService
from erp_kernel.services.cash_book_service import CashBookService

logger = get_logger("services.expense")

SOURCE_TYPE = "EXPENSE"


class ExpenseService(BaseService[Expense]):

    def __init__(self, session, context):
        super().__init__(session, context)
        self._cash = CashBookService(session, context)

    def _find_head(self, head_code: str) -> ExpenseHead | None:
        return self.session.execute(
            select(ExpenseHead).where(
                ExpenseHead.company_code == self.company_code,
                ExpenseHead.head_code == head_code,
            )
        ).scalar_one_or_none()

    def _get_head(self, head_code: str) -> ExpenseHead:
        head = self._find_head(head_code)
        if head is None:
            raise ExpenseHeadNotFoundError(head_code, self.company_code)
        return head

    def create_expense_head(
        self, head_code: str, name: str, description: str | None = None
    ) -> ExpenseHeadInfo:
        if not head_code or not name:
            raise ValidationFailedError("head_code", "head code and name are required")
        if self._find_head(head_code) is not None:
            raise DuplicateCodeError("ExpenseHead", head_code)
        head = ExpenseHead(
            company_code=self.company_code,
            head_code=head_code,
            name=name,
            description=description,
            created_by_id=self.actor_id,
        )
        self.session.add(head)
        self.session.flush()
        logger.info("expense_head_created", extra={"head_code": head_code})
        return ExpenseHeadInfo.from_model(head)

    def deactivate_expense_head(self, head_code: str) -> ExpenseHeadInfo:
        head = self._get_head(head_code)
        head.is_active = False
        self._stamp(head)
        self.session.flush()
        logger.info("expense_head_deactivated", extra={"head_code": head_code})
        return ExpenseHeadInfo.from_model(head)

    def record_expense(self, request: ExpenseRequest) -> ExpenseInfo:
        """
        Record a cash expense.

        Raises:
            ExpenseHeadNotFoundError: unknown head.
            ExpenseHeadInactiveError: head has been deactivated.
        """
        request.validate()
        head = self._get_head(request.head_code)
        if not head.is_active:
            raise ExpenseHeadInactiveError(head.head_code)

        expense = Expense(
            company_code=self.company_code,
            expense_date=request.expense_date,
            head_code=head.head_code,
            amount=request.amount,
            remarks=request.remarks,
            created_by_id=self.actor_id,
        )
        self.session.add(expense)
        self.session.flush()

        self._cash.record_outflow(
            CashEntryType.EXPENSE,
            request.expense_date,
            request.amount,
            f"EXP: {head.name} - {request.remarks}",
            SOURCE_TYPE,
            expense.id,
        )
        logger.info(
            "expense_recorded",
            extra={"head_code": head.head_code, "amount": request.amount},
        )
        return ExpenseInfo.from_model(expense)
