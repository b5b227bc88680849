"""Loans taken by the company and their repayments."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.domain.dtos import LoanRepaymentRequest, LoanRequest
from erp_kernel.exceptions import (
    LoanNotFoundError,
    LoanOverRepaymentError,
    ValidationFailedError,
)


def _loan(amount="5000.00", lender="City Bank", **fields):
    return LoanRequest(lender, Decimal(amount), date(2024, 1, 2), **fields)


def _repay(loan_id, amount, reference="CHQ-1"):
    return LoanRepaymentRequest(loan_id, Decimal(amount), date(2024, 1, 20), reference)


@pytest.fixture
def borrow(posting_engine, company, test_actor_id):
    def _borrow(amount="5000.00", lender="City Bank", **fields):
        return posting_engine.record_loan(
            company.company_code, test_actor_id, _loan(amount, lender, **fields)
        )

    return _borrow


@pytest.fixture
def repay(posting_engine, company, test_actor_id):
    def _repay_loan(loan_id, amount, reference="CHQ-1"):
        return posting_engine.record_loan_repayment(
            company.company_code, test_actor_id, _repay(loan_id, amount, reference)
        )

    return _repay_loan


class TestRecordLoan:

    def test_writes_cash_inflow(self, borrow, reader):
        loan = borrow(interest_rate=Decimal("12.5"), term_months=24)

        assert loan.number == "LN-000001"
        assert loan.amount == Decimal("5000.00")
        assert loan.interest_rate == Decimal("12.5")
        assert loan.term_months == 24
        assert loan.outstanding_amount == Decimal("5000.00")
        assert loan.repayments == ()
        with reader() as q:
            entries = q.cash_book.entries_for_source("LOAN", loan.id)
            balance = q.cash_book.cash_balance()
        assert len(entries) == 1
        assert entries[0].entry_type == "RECEIPT"
        assert entries[0].debit_amount == Decimal("5000.00")
        assert entries[0].credit_amount == Decimal("0.00")
        assert entries[0].description == "Loan from City Bank"
        assert balance == Decimal("5000.00")

    def test_numbers_are_sequential(self, borrow):
        assert borrow().number == "LN-000001"
        assert borrow("250.00", "Owner").number == "LN-000002"

    @pytest.mark.parametrize(
        "request_",
        [
            _loan(lender=" "),
            _loan(amount="0.00"),
            _loan(interest_rate=Decimal("-1")),
            _loan(term_months=0),
        ],
    )
    def test_invalid_request(self, posting_engine, company, test_actor_id, reader, request_):
        with pytest.raises(ValidationFailedError):
            posting_engine.record_loan(company.company_code, test_actor_id, request_)
        with reader() as q:
            assert q.cash_book.totals().entry_count == 0


class TestLoanRepayment:

    def test_partial_repayment(self, borrow, repay, reader):
        loan = borrow()
        repaid = repay(loan.id, "1500.00")

        assert repaid.repaid_amount == Decimal("1500.00")
        assert repaid.outstanding_amount == Decimal("3500.00")
        assert [r.number for r in repaid.repayments] == ["LNR-000001"]
        repayment = repaid.repayments[0]
        assert repayment.loan_id == loan.id
        assert repayment.reference_number == "CHQ-1"
        with reader() as q:
            entries = q.cash_book.entries_for_source("LOAN_REPAYMENT", repayment.id)
            balance = q.cash_book.cash_balance()
        assert len(entries) == 1
        assert entries[0].entry_type == "PAYMENT"
        assert entries[0].credit_amount == Decimal("1500.00")
        assert entries[0].description == "Loan repayment LNR-000001 on LN-000001"
        assert balance == Decimal("3500.00")

    def test_full_repayment_in_instalments(self, borrow, repay, reader):
        loan = borrow("1000.00")
        repay(loan.id, "400.00", "CHQ-1")
        settled = repay(loan.id, "600.00", "CHQ-2")

        assert settled.outstanding_amount == Decimal("0.00")
        assert [r.number for r in settled.repayments] == ["LNR-000001", "LNR-000002"]
        with reader() as q:
            assert q.cash_book.cash_balance() == Decimal("0.00")
            assert q.documents.get_loan(loan.id).repaid_amount == Decimal("1000.00")

    def test_over_repayment_rejected(self, borrow, repay, reader):
        loan = borrow("1000.00")
        repay(loan.id, "800.00")

        with pytest.raises(LoanOverRepaymentError) as exc:
            repay(loan.id, "200.01", "CHQ-2")
        assert exc.value.outstanding == Decimal("200.00")
        assert exc.value.requested == Decimal("200.01")
        assert exc.value.loan_number == "LN-000001"

        with reader() as q:
            stored = q.documents.get_loan(loan.id)
            balance = q.cash_book.cash_balance()
        assert stored.repaid_amount == Decimal("800.00")
        assert len(stored.repayments) == 1
        assert balance == Decimal("200.00")

    def test_rejected_repayment_does_not_use_a_number(self, borrow, repay):
        loan = borrow("100.00")
        with pytest.raises(LoanOverRepaymentError):
            repay(loan.id, "150.00")
        repaid = repay(loan.id, "100.00")
        assert [r.number for r in repaid.repayments] == ["LNR-000001"]

    def test_unknown_loan(self, company, repay):
        with pytest.raises(LoanNotFoundError):
            repay(uuid4(), "10.00")

    def test_missing_reference(self, posting_engine, company, test_actor_id, borrow):
        loan = borrow()
        with pytest.raises(ValidationFailedError):
            posting_engine.record_loan_repayment(
                company.company_code, test_actor_id, _repay(loan.id, "10.00", reference="")
            )


class TestLoanListing:

    def test_open_only(self, borrow, repay, reader):
        settled = borrow("100.00", "Owner")
        repay(settled.id, "100.00")
        borrow("900.00", "City Bank")

        with reader() as q:
            everything = q.documents.list_loans()
            still_open = q.documents.list_loans(open_only=True)
        assert everything.total == 2
        assert [loan.lender_name for loan in still_open.items] == ["City Bank"]

    def test_loans_are_company_scoped(self, borrow, seed_company, query_facade):
        loan = borrow()
        seed_company("GLOBEX")
        with query_facade.open("GLOBEX") as q:
            assert q.documents.list_loans().total == 0
            with pytest.raises(LoanNotFoundError):
                q.documents.get_loan(loan.id)
