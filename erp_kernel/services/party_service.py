"""
Service layer for customers and suppliers.

Creates and updates party master data and takes the row locks that postings
need before moving a party's outstanding balance.  Public methods return
CustomerInfo / SupplierInfo DTOs; ``lock_*`` helpers return ORM rows for
use inside other services' transactions.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select

from erp_kernel.db.types import ZERO
from erp_kernel.domain.dtos import CustomerInfo, SupplierInfo
from erp_kernel.exceptions import (
    CustomerNotFoundError,
    DuplicateCodeError,
    PartyInactiveError,
    SupplierNotFoundError,
    ValidationFailedError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.party import Customer, Supplier
from erp_kernel.services.base import BaseService

logger = get_logger("services.party")


class PartyService(BaseService[Customer]):
    """
    Service for managing customers and suppliers.

    Guarantees:
        - Codes are unique per company (DuplicateCodeError).
        - Outstanding balances are only changed by posting services while
          holding the row lock taken by ``lock_customer``/``lock_supplier``.
    """

    def _customer_stmt(self, code: str):
        return select(Customer).where(
            Customer.company_code == self.company_code, Customer.code == code
        )

    def _supplier_stmt(self, code: str):
        return select(Supplier).where(
            Supplier.company_code == self.company_code, Supplier.code == code
        )

    def lock_customer(self, code: str, require_active: bool = True) -> Customer:
        """
        Lock a customer row FOR UPDATE.

        Raises:
            CustomerNotFoundError: unknown code.
            PartyInactiveError: customer deactivated and ``require_active``.
        """
        customer = self.session.execute(
            self._customer_stmt(code).with_for_update().execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if customer is None:
            raise CustomerNotFoundError(code, self.company_code)
        if require_active and not customer.can_transact:
            raise PartyInactiveError(code)
        return customer

    def lock_supplier(self, code: str, require_active: bool = True) -> Supplier:
        supplier = self.session.execute(
            self._supplier_stmt(code).with_for_update().execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if supplier is None:
            raise SupplierNotFoundError(code, self.company_code)
        if require_active and not supplier.can_transact:
            raise PartyInactiveError(code)
        return supplier

    def create_customer(
        self,
        code: str,
        name: str,
        credit_limit: Decimal = ZERO,
        credit_terms_days: int | None = None,
        city: str | None = None,
        phone: str | None = None,
    ) -> CustomerInfo:
        """
        Create a customer.

        Args:
            credit_limit: 0 means unlimited.
            credit_terms_days: None uses the company's payment terms.
        """
        if not code or not name:
            raise ValidationFailedError("code", "customer code and name are required")
        if credit_limit < 0:
            raise ValidationFailedError("credit_limit", "must not be negative")
        if credit_terms_days is not None and credit_terms_days < 0:
            raise ValidationFailedError("credit_terms_days", "must not be negative")
        if self.session.execute(self._customer_stmt(code)).scalar_one_or_none() is not None:
            raise DuplicateCodeError("Customer", code)

        customer = Customer(
            company_code=self.company_code,
            code=code,
            name=name,
            city=city,
            phone=phone,
            credit_limit=credit_limit,
            credit_terms_days=credit_terms_days,
            outstanding_balance=ZERO,
            created_by_id=self.actor_id,
        )
        self.session.add(customer)
        self.session.flush()
        logger.info("customer_created", extra={"customer_code": code})
        return CustomerInfo.from_model(customer)

    def create_supplier(
        self,
        code: str,
        name: str,
        payment_terms_days: int | None = None,
        contact_person: str | None = None,
        city: str | None = None,
        phone: str | None = None,
    ) -> SupplierInfo:
        if not code or not name:
            raise ValidationFailedError("code", "supplier code and name are required")
        if payment_terms_days is not None and payment_terms_days < 0:
            raise ValidationFailedError("payment_terms_days", "must not be negative")
        if self.session.execute(self._supplier_stmt(code)).scalar_one_or_none() is not None:
            raise DuplicateCodeError("Supplier", code)

        supplier = Supplier(
            company_code=self.company_code,
            code=code,
            name=name,
            contact_person=contact_person,
            city=city,
            phone=phone,
            payment_terms_days=payment_terms_days,
            outstanding_balance=ZERO,
            created_by_id=self.actor_id,
        )
        self.session.add(supplier)
        self.session.flush()
        logger.info("supplier_created", extra={"supplier_code": code})
        return SupplierInfo.from_model(supplier)

    def update_customer_credit(
        self,
        code: str,
        credit_limit: Decimal | None = None,
        credit_terms_days: int | None = None,
    ) -> CustomerInfo:
        customer = self.lock_customer(code, require_active=False)
        if credit_limit is not None:
            if credit_limit < 0:
                raise ValidationFailedError("credit_limit", "must not be negative")
            customer.credit_limit = credit_limit
        if credit_terms_days is not None:
            if credit_terms_days < 0:
                raise ValidationFailedError("credit_terms_days", "must not be negative")
            customer.credit_terms_days = credit_terms_days
        self._stamp(customer)
        self.session.flush()
        return CustomerInfo.from_model(customer)

    def set_customer_active(self, code: str, is_active: bool) -> CustomerInfo:
        customer = self.lock_customer(code, require_active=False)
        customer.is_active = is_active
        self._stamp(customer)
        self.session.flush()
        logger.info("customer_status_changed", extra={"customer_code": code, "is_active": is_active})
        return CustomerInfo.from_model(customer)

    def set_supplier_active(self, code: str, is_active: bool) -> SupplierInfo:
        supplier = self.lock_supplier(code, require_active=False)
        supplier.is_active = is_active
        self._stamp(supplier)
        self.session.flush()
        logger.info("supplier_status_changed", extra={"supplier_code": code, "is_active": is_active})
        return SupplierInfo.from_model(supplier)
