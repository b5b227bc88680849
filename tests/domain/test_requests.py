"""Request validation runs before any transaction is opened."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.domain.dtos import (
    ExpenseRequest,
    PaymentReceiptRequest,
    PurchaseInvoiceRequest,
    PurchaseLineRequest,
    ReturnLineRequest,
    SalesInvoiceRequest,
    SalesLineRequest,
    SalesReturnRequest,
)
from erp_kernel.exceptions import ValidationFailedError

TODAY = date(2024, 1, 1)


def _invoice(*lines, settlement="PENDING", customer="C001"):
    return SalesInvoiceRequest(customer, TODAY, tuple(lines), settlement)


class TestSalesInvoiceRequest:

    def test_valid(self):
        _invoice(SalesLineRequest("P001", 1)).validate()

    def test_no_lines(self):
        with pytest.raises(ValidationFailedError) as exc:
            _invoice().validate()
        assert exc.value.field == "lines"

    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True])
    def test_bad_quantity(self, quantity):
        with pytest.raises(ValidationFailedError) as exc:
            _invoice(SalesLineRequest("P001", quantity)).validate()
        assert exc.value.field == "quantity"

    def test_duplicate_products(self):
        with pytest.raises(ValidationFailedError):
            _invoice(SalesLineRequest("P001", 1), SalesLineRequest("P001", 2)).validate()

    def test_unknown_settlement(self):
        with pytest.raises(ValidationFailedError) as exc:
            _invoice(SalesLineRequest("P001", 1), settlement="CREDIT").validate()
        assert exc.value.field == "settlement"

    def test_blank_customer(self):
        with pytest.raises(ValidationFailedError):
            _invoice(SalesLineRequest("P001", 1), customer=" ").validate()


class TestOtherRequests:

    def test_return_requires_lines(self):
        with pytest.raises(ValidationFailedError):
            SalesReturnRequest(uuid4(), TODAY, ()).validate()
        SalesReturnRequest(uuid4(), TODAY, (ReturnLineRequest("P001", 1),)).validate()

    def test_purchase_negative_cost(self):
        request = PurchaseInvoiceRequest(
            "S001", TODAY, (PurchaseLineRequest("P001", 1, Decimal("-1")),)
        )
        with pytest.raises(ValidationFailedError):
            request.validate()

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("1.001")])
    def test_receipt_amount(self, amount):
        with pytest.raises(ValidationFailedError) as exc:
            PaymentReceiptRequest("C001", amount, TODAY, "REF-1").validate()
        assert exc.value.field == "amount"

    def test_receipt_requires_reference(self):
        with pytest.raises(ValidationFailedError) as exc:
            PaymentReceiptRequest("C001", Decimal("10"), TODAY, "").validate()
        assert exc.value.field == "reference_number"

    def test_expense_requires_remarks(self):
        with pytest.raises(ValidationFailedError) as exc:
            ExpenseRequest("RENT", Decimal("10"), TODAY, "  ").validate()
        assert exc.value.field == "remarks"
