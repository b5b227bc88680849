"""Purchase invoices and their voids."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from erp_kernel.domain.dtos import (
    PurchaseInvoiceRequest,
    PurchaseLineRequest,
    SupplierPaymentRequest,
)
from erp_kernel.domain.status import InvoiceStatus
from erp_kernel.exceptions import (
    InvoiceNotVoidableError,
    PurchaseInvoiceNotFoundError,
    StockInsufficientError,
    SupplierNotFoundError,
    ValidationFailedError,
)


class TestCreatePurchase:

    def test_pending_defaults_to_purchase_price(self, buy, reader):
        purchase = buy(("P001", 10))
        assert purchase.number == "PUR-000001"
        assert purchase.subtotal == Decimal("600.00")
        assert purchase.tax_amount == Decimal("30.00")
        assert purchase.total_amount == Decimal("630.00")
        assert purchase.balance_due == Decimal("630.00")
        assert purchase.due_date == date(2024, 2, 15)  # supplier terms, 45 days
        with reader() as q:
            assert q.master_data.get_product("P001").current_stock == 60
            assert q.master_data.get_supplier("S001").outstanding_balance == Decimal("630.00")
            assert q.cash_book.cash_balance() == Decimal("0.00")

    def test_paid_with_explicit_cost(self, buy, reader):
        purchase = buy(("P003", 5, Decimal("3.50")), settlement="PAID")
        assert purchase.total_amount == Decimal("17.50")
        assert purchase.balance_due == Decimal("0.00")
        assert purchase.lines[0].unit_price == Decimal("3.50")
        with reader() as q:
            entries = q.cash_book.entries_for_source("PURCHASE_INVOICE", purchase.id)
            assert q.master_data.get_supplier("S001").outstanding_balance == Decimal("0.00")
        assert [(e.entry_type, e.credit_amount) for e in entries] == [("PURCHASE", Decimal("17.50"))]

    def test_supplier_reference_kept(self, posting_engine, company, test_actor_id):
        request = PurchaseInvoiceRequest(
            "S001", date(2024, 1, 1), (PurchaseLineRequest("P003", 1),),
            supplier_reference="BILL-7781",
        )
        purchase = posting_engine.create_purchase_invoice(company.company_code, test_actor_id, request)
        assert purchase.supplier_reference == "BILL-7781"

    def test_unknown_supplier(self, buy):
        with pytest.raises(SupplierNotFoundError):
            buy(("P001", 1), supplier="S999")


class TestVoidPurchase:

    def test_void_pending(self, buy, posting_engine, company, test_actor_id, reader):
        purchase = buy(("P001", 10))
        voided = posting_engine.void_purchase_invoice(
            company.company_code, test_actor_id, purchase.id, "Wrong supplier"
        )
        assert voided.is_voided
        assert voided.status is InvoiceStatus.VOID
        assert voided.balance_due == Decimal("0.00")
        with reader() as q:
            assert q.master_data.get_product("P001").current_stock == 50
            assert q.master_data.get_supplier("S001").outstanding_balance == Decimal("0.00")

    def test_void_paid_returns_cash(self, buy, posting_engine, company, test_actor_id, reader):
        purchase = buy(("P003", 5), settlement="PAID")  # 20.00
        posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "Returned")
        with reader() as q:
            entries = q.cash_book.entries_for_source("PURCHASE_INVOICE", purchase.id)
            assert q.cash_book.cash_balance() == Decimal("0.00")
        assert sorted(e.entry_type for e in entries) == ["PURCHASE", "PURCHASE_VOID"]

    def test_goods_already_sold(self, buy, sell, posting_engine, company, test_actor_id, reader):
        purchase = buy(("P002", 5))
        sell(("P002", 12))
        with pytest.raises(StockInsufficientError):
            posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "x")
        with reader() as q:
            assert q.master_data.get_product("P002").current_stock == 3

    def test_paid_against_cannot_be_voided(self, buy, posting_engine, company, test_actor_id):
        purchase = buy(("P001", 1))
        posting_engine.record_supplier_payment(
            company.company_code, test_actor_id,
            SupplierPaymentRequest("S001", Decimal("10.00"), date(2024, 1, 2), "CHQ-1"),
        )
        with pytest.raises(InvoiceNotVoidableError):
            posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "x")

    def test_double_void(self, buy, posting_engine, company, test_actor_id):
        purchase = buy(("P001", 1))
        posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "x")
        with pytest.raises(InvoiceNotVoidableError):
            posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "x")

    def test_reason_required(self, buy, posting_engine, company, test_actor_id):
        purchase = buy(("P001", 1))
        with pytest.raises(ValidationFailedError):
            posting_engine.void_purchase_invoice(company.company_code, test_actor_id, purchase.id, "")

    def test_unknown_purchase(self, company, posting_engine, test_actor_id):
        with pytest.raises(PurchaseInvoiceNotFoundError):
            posting_engine.void_purchase_invoice(company.company_code, test_actor_id, uuid4(), "x")
