"""Tests for derived invoice status and stock classification."""

from datetime import date
from decimal import Decimal

import pytest

from erp_kernel.domain.status import (
    InvoiceStatus,
    StockStatus,
    classify_stock,
    derive_invoice_status,
)

D = Decimal
DUE = date(2024, 1, 31)


class TestDeriveInvoiceStatus:

    def test_void_wins(self):
        assert derive_invoice_status(D("100"), D("100"), is_voided=True) is InvoiceStatus.VOID

    def test_paid_when_nothing_owed(self):
        assert derive_invoice_status(D("100"), D("0")) is InvoiceStatus.PAID

    def test_paid_beats_overdue(self):
        status = derive_invoice_status(D("100"), D("0"), due_date=DUE, as_of=date(2024, 3, 1))
        assert status is InvoiceStatus.PAID

    def test_pending_when_untouched(self):
        assert derive_invoice_status(D("100"), D("100")) is InvoiceStatus.PENDING

    def test_partial_after_payment(self):
        assert derive_invoice_status(D("100"), D("40")) is InvoiceStatus.PARTIAL

    def test_return_alone_keeps_pending(self):
        # 30 returned and credited, nothing paid
        status = derive_invoice_status(D("100"), D("70"), returned_amount=D("30"))
        assert status is InvoiceStatus.PENDING

    def test_overdue_after_due_date(self):
        status = derive_invoice_status(D("100"), D("40"), due_date=DUE, as_of=date(2024, 2, 1))
        assert status is InvoiceStatus.OVERDUE

    def test_not_overdue_on_due_date(self):
        status = derive_invoice_status(D("100"), D("100"), due_date=DUE, as_of=DUE)
        assert status is InvoiceStatus.PENDING


class TestClassifyStock:

    @pytest.mark.parametrize(
        "current, minimum, expected",
        [
            (0, 5, StockStatus.OUT_OF_STOCK),
            (-1, 0, StockStatus.OUT_OF_STOCK),
            (5, 5, StockStatus.LOW_STOCK),
            (3, 5, StockStatus.LOW_STOCK),
            (6, 5, StockStatus.IN_STOCK),
            (1, 0, StockStatus.IN_STOCK),
        ],
    )
    def test_classification(self, current, minimum, expected):
        assert classify_stock(current, minimum) is expected
