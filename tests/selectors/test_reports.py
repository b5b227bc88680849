"""Aggregate reports and the dashboard."""

from datetime import date
from decimal import Decimal

import pytest

from erp_kernel.domain.dtos import ExpenseRequest

ZERO = Decimal("0.00")


@pytest.fixture
def trading_day(sell, receive, posting_engine, company, test_actor_id):
    """Two live invoices, one voided invoice and a part payment."""
    pending = sell(("P001", 2))                       # 210.00, left at 110.00
    paid = sell(("P002", 3), settlement="PAID")       # 89.51
    voided = sell(("P003", 1))
    posting_engine.void_sales_invoice(company.company_code, test_actor_id, voided.id, "dup")
    receive("100.00")
    return pending, paid, voided


class TestEmptyCompany:

    def test_all_zero(self, query_facade):
        with query_facade.open("EMPTY") as q:
            summary = q.reports.sales_summary()
            dashboard = q.reports.dashboard()
            valuation = q.reports.inventory_valuation()
            expenses = q.reports.expense_breakdown()
            balance = q.cash_book.cash_balance()
        assert summary.invoice_count == 0
        assert summary.total_revenue == ZERO
        assert summary.cash_collected == ZERO
        assert dashboard.total_revenue == ZERO
        assert dashboard.recent_invoices == ()
        assert dashboard.top_products == ()
        assert valuation.rows == ()
        assert valuation.total_cost_value == ZERO
        assert expenses.total == ZERO
        assert expenses.count == 0
        assert balance == ZERO

    def test_trend_has_empty_buckets(self, query_facade):
        with query_facade.open("EMPTY") as q:
            trend = q.reports.monthly_sales_trend(months=6)
        assert [m.label for m in trend] == ["Aug", "Sep", "Oct", "Nov", "Dec", "Jan"]
        assert trend[0].year == 2023
        assert trend[-1].year == 2024
        assert all(m.sales == ZERO for m in trend)


class TestSalesReports:

    def test_summary_excludes_voided(self, trading_day, reader):
        with reader() as q:
            summary = q.reports.sales_summary()
        assert summary.invoice_count == 2
        assert summary.subtotal == Decimal("276.50")
        assert summary.tax_amount == Decimal("23.01")
        assert summary.total_revenue == Decimal("299.51")
        assert summary.outstanding == Decimal("110.00")
        assert summary.cash_collected == Decimal("189.51")

    def test_summary_date_range(self, sell, reader):
        sell(("P003", 1), invoice_date=date(2024, 1, 10))
        sell(("P003", 2), invoice_date=date(2024, 2, 10))
        with reader() as q:
            january = q.reports.sales_summary(date(2024, 1, 1), date(2024, 1, 31))
        assert january.invoice_count == 1
        assert january.total_revenue == Decimal("10.00")

    def test_sales_by_product(self, trading_day, reader):
        with reader() as q:
            rows = q.reports.sales_by_product()
        assert [(r.product_code, r.quantity_sold, r.revenue) for r in rows] == [
            ("P001", 2, Decimal("200.00")),
            ("P002", 3, Decimal("76.50")),
        ]
        assert rows[0].product_name == "Widget"

    def test_trend_counts_settled_only(self, trading_day, reader):
        with reader() as q:
            trend = q.reports.monthly_sales_trend(months=3)
        assert [m.label for m in trend] == ["Nov", "Dec", "Jan"]
        assert trend[-1].sales == Decimal("89.51")


class TestInventoryReports:

    def test_valuation(self, company, reader):
        with reader() as q:
            valuation = q.reports.inventory_valuation()
        assert valuation.total_units == 160
        assert valuation.total_cost_value == Decimal("3550.00")
        assert valuation.total_retail_value == Decimal("6255.00")
        widget = valuation.rows[0]
        assert (widget.product_code, widget.cost_value, widget.retail_value) == (
            "P001", Decimal("3000.00"), Decimal("5000.00"),
        )

    def test_low_stock(self, sell, reader):
        sell(("P002", 8))
        with reader() as q:
            low = q.reports.low_stock()
        assert [p.code for p in low] == ["P002"]


class TestPartyReports:

    def test_customer_balances(self, sell, reader):
        sell(("P001", 2))
        with reader() as q:
            rows = q.reports.customer_balances()
            everyone = q.reports.customer_balances(include_zero=True)
        assert [(r.party_code, r.outstanding_balance) for r in rows] == [("C001", Decimal("210.00"))]
        assert len(everyone) == 2

    def test_vendor_balances(self, buy, reader):
        buy(("P003", 10))
        with reader() as q:
            rows = q.reports.vendor_balances()
        assert [(r.party_code, r.outstanding_balance) for r in rows] == [("S001", Decimal("40.00"))]


class TestCashReports:

    def test_expense_breakdown(self, posting_engine, company, test_actor_id, reader):
        a, c = test_actor_id, company.company_code
        posting_engine.create_expense_head(c, a, "FUEL", "Fuel")
        for head, amount in (("RENT", "100.00"), ("RENT", "50.00"), ("FUEL", "30.00")):
            posting_engine.record_expense(
                c, a, ExpenseRequest(head, Decimal(amount), date(2024, 1, 2), "monthly")
            )
        with reader() as q:
            breakdown = q.reports.expense_breakdown()
        assert breakdown.total == Decimal("180.00")
        assert breakdown.count == 3
        assert [(h.head_code, h.head_name, h.total, h.count) for h in breakdown.by_head] == [
            ("RENT", "Rent", Decimal("150.00"), 2),
            ("FUEL", "Fuel", Decimal("30.00"), 1),
        ]

    def test_transaction_history(self, trading_day, reader):
        with reader() as q:
            history = q.reports.transaction_history()
            totals = q.cash_book.totals()
        assert len(history.entries) == 2
        assert history.total_inflow == Decimal("189.51")
        assert history.total_outflow == ZERO
        assert history.net == totals.net == Decimal("189.51")

    def test_cash_entry_listing(self, trading_day, reader):
        with reader() as q:
            receipts = q.cash_book.list_entries(entry_type="RECEIPT")
        assert receipts.total == 1
        assert receipts.items[0].debit_amount == Decimal("100.00")


class TestDashboard:

    def test_headline_numbers(self, trading_day, reader):
        with reader() as q:
            dashboard = q.reports.dashboard()
        assert dashboard.total_revenue == Decimal("89.51")
        assert dashboard.pending_receivables == Decimal("110.00")
        assert dashboard.low_stock_count == 0
        assert dashboard.customer_count == 2
        assert [i.number for i in dashboard.recent_invoices] == [
            "INV-000003", "INV-000002", "INV-000001",
        ]
        assert [p.product_code for p in dashboard.top_products] == ["P001", "P002"]


class TestRepeatableReads:

    def _snapshot(self, q):
        return (
            q.reports.sales_summary(),
            q.documents.list_sales_invoices(),
            q.reports.transaction_history(),
        )

    def test_same_reader_twice(self, trading_day, reader):
        with reader() as q:
            first = self._snapshot(q)
            second = self._snapshot(q)
        assert first == second

    def test_separate_readers(self, trading_day, reader):
        with reader() as q:
            first = self._snapshot(q)
        with reader() as q:
            second = self._snapshot(q)
        assert first == second
        summary, invoices, history = second
        assert summary.invoice_count == 2
        assert [i.number for i in invoices.items] == ["INV-000003", "INV-000002", "INV-000001"]
        assert len(history.entries) == 2
