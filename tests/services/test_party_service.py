"""
Tests for PartyService.

Covers:
- Customer and supplier creation
- Credit settings and activation
- Row locking rules for inactive parties
"""

from decimal import Decimal

import pytest

from erp_kernel.exceptions import (
    CustomerNotFoundError,
    DuplicateCodeError,
    PartyInactiveError,
    SupplierNotFoundError,
    ValidationFailedError,
)


class TestCustomers:

    def test_create(self, parties):
        customer = parties.create_customer(
            "C001", "Alpha Traders", credit_limit=Decimal("500.00"), city="Lahore"
        )
        assert customer.code == "C001"
        assert customer.credit_limit == Decimal("500.00")
        assert customer.outstanding_balance == Decimal("0.00")
        assert customer.is_active is True

    def test_duplicate(self, parties):
        parties.create_customer("C001", "Alpha")
        with pytest.raises(DuplicateCodeError):
            parties.create_customer("C001", "Alpha again")

    def test_negative_limit(self, parties):
        with pytest.raises(ValidationFailedError):
            parties.create_customer("C001", "Alpha", credit_limit=Decimal("-1"))

    def test_update_credit(self, parties):
        parties.create_customer("C001", "Alpha")
        updated = parties.update_customer_credit(
            "C001", credit_limit=Decimal("750.00"), credit_terms_days=10
        )
        assert updated.credit_limit == Decimal("750.00")
        assert updated.credit_terms_days == 10

    def test_deactivated_customer_cannot_be_locked_for_sale(self, parties):
        parties.create_customer("C001", "Alpha")
        parties.set_customer_active("C001", False)
        with pytest.raises(PartyInactiveError):
            parties.lock_customer("C001")
        assert parties.lock_customer("C001", require_active=False).code == "C001"

    def test_unknown(self, parties):
        with pytest.raises(CustomerNotFoundError):
            parties.lock_customer("C404")


class TestSuppliers:

    def test_create_and_deactivate(self, parties):
        supplier = parties.create_supplier("S001", "Prime Supply", payment_terms_days=45)
        assert supplier.payment_terms_days == 45
        inactive = parties.set_supplier_active("S001", False)
        assert inactive.is_active is False
        with pytest.raises(PartyInactiveError):
            parties.lock_supplier("S001")

    def test_negative_terms(self, parties):
        with pytest.raises(ValidationFailedError):
            parties.create_supplier("S001", "Prime", payment_terms_days=-5)

    def test_unknown(self, parties):
        with pytest.raises(SupplierNotFoundError):
            parties.lock_supplier("S404")
