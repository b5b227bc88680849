"""
End-to-end sales invoice posting.

Covers:
- PENDING and PAID settlement effects on stock, balances and cash
- Per-line tax rounding on multi-line invoices
- Gap-free numbering and all-or-nothing failure
- Credit limits and inactive master data
"""

from datetime import date
from decimal import Decimal

import pytest

from erp_kernel.domain.dtos import SalesInvoiceRequest, SalesLineRequest
from erp_kernel.domain.policy import PostingPolicy
from erp_kernel.domain.status import InvoiceStatus
from erp_kernel.exceptions import (
    CreditLimitExceededError,
    CustomerNotFoundError,
    PartyInactiveError,
    ProductNotFoundError,
    StockInsufficientError,
    ValidationFailedError,
)
from erp_kernel.services.posting_engine import PostingEngine


class TestPendingInvoice:

    def test_amounts_and_number(self, sell):
        invoice = sell(("P001", 2))
        assert invoice.number == "INV-000001"
        assert invoice.subtotal == Decimal("200.00")
        assert invoice.tax_amount == Decimal("10.00")
        assert invoice.total_amount == Decimal("210.00")
        assert invoice.balance_due == Decimal("210.00")
        assert invoice.status is InvoiceStatus.PENDING

    def test_default_terms_set_due_date(self, sell):
        invoice = sell(("P001", 1))
        assert invoice.due_date == date(2024, 1, 31)

    def test_customer_terms_override(self, sell):
        invoice = sell(("P003", 1), customer="C002")
        assert invoice.due_date == date(2024, 1, 16)

    def test_stock_and_customer_balance(self, sell, reader):
        sell(("P001", 2))
        with reader() as q:
            assert q.master_data.get_product("P001").current_stock == 48
            assert q.master_data.get_customer("C001").outstanding_balance == Decimal("210.00")
            assert q.cash_book.cash_balance() == Decimal("0.00")


class TestPaidInvoice:

    def test_cash_debit_and_no_receivable(self, sell, reader):
        invoice = sell(("P001", 2), settlement="PAID")
        assert invoice.balance_due == Decimal("0.00")
        assert invoice.status is InvoiceStatus.PAID
        with reader() as q:
            entries = q.cash_book.entries_for_source("SALES_INVOICE", invoice.id)
            customer = q.master_data.get_customer("C001")
        assert len(entries) == 1
        assert entries[0].entry_type == "SALES"
        assert entries[0].debit_amount == Decimal("210.00")
        assert entries[0].credit_amount == Decimal("0.00")
        assert entries[0].reference == "INV-000001"
        assert customer.outstanding_balance == Decimal("0.00")


class TestMultiLine:

    def test_tax_rounded_per_line(self, sell):
        invoice = sell(("P001", 2), ("P002", 3), ("P003", 1))
        assert invoice.subtotal == Decimal("286.50")
        # 10.00 + 13.01 (13.005 rounded half-up) + 0
        assert invoice.tax_amount == Decimal("23.01")
        assert invoice.total_amount == Decimal("309.51")
        assert [line.line_number for line in invoice.lines] == [1, 2, 3]
        assert invoice.lines[2].tax_amount == Decimal("0.00")

    def test_unit_price_snapshot(self, sell, posting_engine, company, test_actor_id, reader):
        invoice = sell(("P001", 1))
        posting_engine.update_product(
            company.company_code, test_actor_id, "P001", unit_price=Decimal("150.00")
        )
        with reader() as q:
            stored = q.documents.get_sales_invoice(invoice.id)
        assert stored.lines[0].unit_price == Decimal("100.00")
        assert stored.total_amount == Decimal("105.00")


class TestNumbering:

    def test_numbers_increase(self, sell):
        numbers = [sell(("P003", 1)).number for _ in range(3)]
        assert numbers == ["INV-000001", "INV-000002", "INV-000003"]

    def test_rejected_invoice_consumes_no_number(self, sell):
        with pytest.raises(StockInsufficientError):
            sell(("P002", 11))
        assert sell(("P002", 1)).number == "INV-000001"


class TestAllOrNothing:

    def test_insufficient_stock_leaves_no_trace(self, sell, reader):
        with pytest.raises(StockInsufficientError) as exc:
            sell(("P001", 5), ("P002", 11))
        assert exc.value.product_code == "P002"
        assert exc.value.available == 10
        with reader() as q:
            assert q.master_data.get_product("P001").current_stock == 50
            assert q.master_data.get_product("P002").current_stock == 10
            assert q.master_data.get_customer("C001").outstanding_balance == Decimal("0.00")
            assert q.documents.list_sales_invoices().total == 0

    def test_selling_entire_stock(self, sell, reader):
        sell(("P002", 10))
        with reader() as q:
            product = q.master_data.get_product("P002")
        assert product.current_stock == 0
        assert product.stock_status.value == "OUT_OF_STOCK"

    def test_unknown_product(self, sell):
        with pytest.raises(ProductNotFoundError):
            sell(("P999", 1))

    def test_unknown_customer(self, sell):
        with pytest.raises(CustomerNotFoundError):
            sell(("P001", 1), customer="C999")


class TestCreditLimit:

    def test_pending_over_limit_rejected(self, sell):
        with pytest.raises(CreditLimitExceededError) as exc:
            sell(("P001", 10), customer="C002")  # 1050.00 > 1000.00
        assert exc.value.credit_limit == Decimal("1000.00")

    def test_cumulative_balance_counts(self, sell):
        sell(("P001", 9), customer="C002")  # 945.00
        with pytest.raises(CreditLimitExceededError):
            sell(("P003", 6), customer="C002")  # +60.00

    def test_paid_ignores_limit(self, sell):
        invoice = sell(("P001", 10), customer="C002", settlement="PAID")
        assert invoice.total_amount == Decimal("1050.00")

    def test_zero_limit_is_unlimited(self, sell):
        invoice = sell(("P001", 40))
        assert invoice.total_amount == Decimal("4200.00")

    def test_policy_can_disable_enforcement(self, session_factory, deterministic_clock, company, test_actor_id):
        engine = PostingEngine(
            session_factory,
            policy_provider=lambda code: PostingPolicy(enforce_credit_limits=False),
            clock=deterministic_clock,
            retry_backoff_seconds=0,
        )
        request = SalesInvoiceRequest("C002", date(2024, 1, 1), (SalesLineRequest("P001", 10),))
        invoice = engine.create_sales_invoice(company.company_code, test_actor_id, request)
        assert invoice.balance_due == Decimal("1050.00")


class TestInactiveMasterData:

    def test_inactive_customer(self, sell, posting_engine, company, test_actor_id):
        posting_engine.set_customer_active(company.company_code, test_actor_id, "C001", False)
        with pytest.raises(PartyInactiveError):
            sell(("P001", 1))

    def test_inactive_product(self, sell, posting_engine, company, test_actor_id):
        posting_engine.update_product(company.company_code, test_actor_id, "P003", is_active=False)
        with pytest.raises(ValidationFailedError):
            sell(("P003", 1))


class TestPostingLogs:

    def test_posted_event_carries_context(self, sell, captured_logs, test_actor_id):
        sell(("P001", 1))
        posted = [r for r in captured_logs() if r["message"] == "sales_invoice_posted"]
        assert len(posted) == 1
        record = posted[0]
        assert record["invoice_number"] == "INV-000001"
        assert record["company_code"] == "ACME"
        assert record["operation"] == "create_sales_invoice"
        assert record["actor_id"] == str(test_actor_id)
        assert record["document_number"] == "INV-000001"
        assert "correlation_id" in record

    def test_low_stock_warning_after_sale(self, sell, captured_logs):
        sell(("P002", 8))  # leaves 2, minimum 2
        warnings = [r for r in captured_logs() if r["message"] == "stock_below_minimum"]
        assert [w["product_code"] for w in warnings] == ["P002"]
