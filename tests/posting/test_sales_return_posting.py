"""
Sales returns against an invoice.

The return value is split into a credit (reduces what is still owed) and a
cash refund (for the part already paid).
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.domain.status import InvoiceStatus
from erp_kernel.exceptions import (
    InvoiceNotFoundError,
    ReturnExceedsInvoicedError,
    ValidationFailedError,
)


class TestReturnOnPendingInvoice:

    def test_full_credit(self, sell, return_goods, reader):
        invoice = sell(("P001", 2))
        sales_return = return_goods(invoice.id, ("P001", 1))

        assert sales_return.number == "RTN-000001"
        assert sales_return.invoice_number == invoice.number
        assert sales_return.total_amount == Decimal("105.00")
        assert sales_return.credit_amount == Decimal("105.00")
        assert sales_return.refund_amount == Decimal("0.00")

        with reader() as q:
            stored = q.documents.get_sales_invoice(invoice.id)
            assert q.master_data.get_product("P001").current_stock == 49
            assert q.master_data.get_customer("C001").outstanding_balance == Decimal("105.00")
            assert q.cash_book.cash_balance() == Decimal("0.00")
        assert stored.balance_due == Decimal("105.00")
        assert stored.returned_amount == Decimal("105.00")
        assert stored.status is InvoiceStatus.PENDING


class TestReturnOnPaidInvoice:

    def test_full_refund(self, sell, return_goods, reader):
        invoice = sell(("P001", 2), settlement="PAID")
        sales_return = return_goods(invoice.id, ("P001", 1))

        assert sales_return.credit_amount == Decimal("0.00")
        assert sales_return.refund_amount == Decimal("105.00")
        with reader() as q:
            entries = q.cash_book.entries_for_source("SALES_RETURN", sales_return.id)
            assert q.cash_book.cash_balance() == Decimal("105.00")
            assert q.master_data.get_customer("C001").outstanding_balance == Decimal("0.00")
        assert len(entries) == 1
        assert entries[0].entry_type == "SALES_RETURN"
        assert entries[0].credit_amount == Decimal("105.00")


class TestMixedSettlement:

    def test_credit_then_refund(self, sell, receive, return_goods, reader):
        invoice = sell(("P001", 2))
        receive("150.00", invoice_id=invoice.id)
        sales_return = return_goods(invoice.id, ("P001", 1))

        assert sales_return.credit_amount == Decimal("60.00")
        assert sales_return.refund_amount == Decimal("45.00")
        with reader() as q:
            stored = q.documents.get_sales_invoice(invoice.id)
            customer = q.master_data.get_customer("C001")
            balance = q.cash_book.cash_balance()
        assert stored.balance_due == Decimal("0.00")
        assert stored.status is InvoiceStatus.PAID
        assert customer.outstanding_balance == Decimal("0.00")
        assert balance == Decimal("105.00")  # 150 in, 45 out


class TestReturnLimits:

    def test_cannot_exceed_invoiced(self, sell, return_goods):
        invoice = sell(("P001", 2))
        with pytest.raises(ReturnExceedsInvoicedError):
            return_goods(invoice.id, ("P001", 3))

    def test_cumulative_returns_checked(self, sell, return_goods, reader):
        invoice = sell(("P001", 2))
        return_goods(invoice.id, ("P001", 1))
        return_goods(invoice.id, ("P001", 1))
        with pytest.raises(ReturnExceedsInvoicedError) as exc:
            return_goods(invoice.id, ("P001", 1))
        assert exc.value.already_returned == 2
        with reader() as q:
            assert q.master_data.get_product("P001").current_stock == 50

    def test_product_not_on_invoice(self, sell, return_goods):
        invoice = sell(("P001", 1))
        with pytest.raises(ValidationFailedError):
            return_goods(invoice.id, ("P002", 1))

    def test_voided_invoice(self, sell, return_goods, posting_engine, company, test_actor_id):
        invoice = sell(("P001", 1))
        posting_engine.void_sales_invoice(company.company_code, test_actor_id, invoice.id, "Entered twice")
        with pytest.raises(ValidationFailedError):
            return_goods(invoice.id, ("P001", 1))

    def test_unknown_invoice(self, company, return_goods):
        with pytest.raises(InvoiceNotFoundError):
            return_goods(uuid4(), ("P001", 1))


class TestReturnPricing:

    def test_uses_invoiced_price_and_rate(self, sell, return_goods, posting_engine, company, test_actor_id):
        invoice = sell(("P002", 3))
        posting_engine.update_product(
            company.company_code, test_actor_id, "P002",
            unit_price=Decimal("99.00"), tax_code=None,
        )
        sales_return = return_goods(invoice.id, ("P002", 1))
        # 25.50 + 17% = 25.50 + 4.34 (4.335 rounded half-up)
        assert sales_return.subtotal == Decimal("25.50")
        assert sales_return.tax_amount == Decimal("4.34")
        assert sales_return.total_amount == Decimal("29.84")

    def test_inactive_customer_can_still_return(self, sell, return_goods, posting_engine, company, test_actor_id):
        invoice = sell(("P001", 1))
        posting_engine.set_customer_active(company.company_code, test_actor_id, "C001", False)
        sales_return = return_goods(invoice.id, ("P001", 1))
        assert sales_return.credit_amount == Decimal("105.00")

    def test_partial_returns_add_up_to_invoice(self, sell, return_goods, reader):
        # 2 x 25.50 = 51.00; 17% = 8.67.  One unit alone rounds to 4.34 tax.
        invoice = sell(("P002", 2))
        assert invoice.total_amount == Decimal("59.67")

        first = return_goods(invoice.id, ("P002", 1))
        assert first.total_amount == Decimal("29.84")
        assert first.credit_amount == Decimal("29.84")

        second = return_goods(invoice.id, ("P002", 1))
        assert second.subtotal == Decimal("25.50")
        assert second.tax_amount == Decimal("4.33")
        assert second.total_amount == Decimal("29.83")
        assert second.credit_amount == Decimal("29.83")
        assert second.refund_amount == Decimal("0.00")

        with reader() as q:
            stored = q.documents.get_sales_invoice(invoice.id)
            refunds = q.cash_book.entries_for_source("SALES_RETURN", second.id)
            balance = q.cash_book.cash_balance()
            customer = q.master_data.get_customer("C001")
        assert stored.returned_amount == Decimal("59.67")
        assert stored.balance_due == Decimal("0.00")
        assert refunds == []
        assert balance == Decimal("0.00")
        assert customer.outstanding_balance == Decimal("0.00")
