"""
Module: erp_kernel.selectors.master_data_selector
Responsibility: Read-only listings and single reads of products, customers,
    suppliers, tax rates and expense heads.
Architecture position: Kernel > Selectors.

Ordering:
    Products and parties by name, then code.  Tax rates by code.  Expense
    heads by name.
"""

from __future__ import annotations

from sqlalchemy import or_, select

from erp_kernel.domain.dtos import (
    CustomerInfo,
    ExpenseHeadInfo,
    ProductInfo,
    SupplierInfo,
    TaxRateInfo,
)
from erp_kernel.exceptions import (
    CustomerNotFoundError,
    ProductNotFoundError,
    SupplierNotFoundError,
)
from erp_kernel.models.catalog import Product, TaxRate
from erp_kernel.models.expense import ExpenseHead
from erp_kernel.models.party import Customer, Supplier
from erp_kernel.selectors.base import BaseSelector, Page


class MasterDataSelector(BaseSelector[Product]):
    """Selector for catalog and party master data."""

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def list_products(
        self,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
        category_code: str | None = None,
        active_only: bool = False,
    ) -> Page[ProductInfo]:
        stmt = select(Product).where(Product.company_code == self.company_code)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Product.name.ilike(pattern), Product.code.ilike(pattern)))
        if category_code is not None:
            stmt = stmt.where(Product.category_code == category_code)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        stmt = stmt.order_by(Product.name, Product.code)
        return self._paginate(stmt, ProductInfo.from_model, page, page_size)

    def get_product(self, code: str) -> ProductInfo:
        product = self.session.execute(
            select(Product).where(
                Product.company_code == self.company_code, Product.code == code
            )
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(code, self.company_code)
        return ProductInfo.from_model(product)

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def list_customers(
        self,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
        active_only: bool = False,
    ) -> Page[CustomerInfo]:
        stmt = select(Customer).where(Customer.company_code == self.company_code)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Customer.name.ilike(pattern), Customer.code.ilike(pattern)))
        if active_only:
            stmt = stmt.where(Customer.is_active.is_(True))
        stmt = stmt.order_by(Customer.name, Customer.code)
        return self._paginate(stmt, CustomerInfo.from_model, page, page_size)

    def get_customer(self, code: str) -> CustomerInfo:
        customer = self.session.execute(
            select(Customer).where(
                Customer.company_code == self.company_code, Customer.code == code
            )
        ).scalar_one_or_none()
        if customer is None:
            raise CustomerNotFoundError(code, self.company_code)
        return CustomerInfo.from_model(customer)

    def list_suppliers(
        self,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
        active_only: bool = False,
    ) -> Page[SupplierInfo]:
        stmt = select(Supplier).where(Supplier.company_code == self.company_code)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Supplier.name.ilike(pattern), Supplier.code.ilike(pattern)))
        if active_only:
            stmt = stmt.where(Supplier.is_active.is_(True))
        stmt = stmt.order_by(Supplier.name, Supplier.code)
        return self._paginate(stmt, SupplierInfo.from_model, page, page_size)

    def get_supplier(self, code: str) -> SupplierInfo:
        supplier = self.session.execute(
            select(Supplier).where(
                Supplier.company_code == self.company_code, Supplier.code == code
            )
        ).scalar_one_or_none()
        if supplier is None:
            raise SupplierNotFoundError(code, self.company_code)
        return SupplierInfo.from_model(supplier)

    # ------------------------------------------------------------------
    # Small tables, returned whole
    # ------------------------------------------------------------------

    def list_tax_rates(self, active_only: bool = True) -> list[TaxRateInfo]:
        stmt = select(TaxRate).where(TaxRate.company_code == self.company_code)
        if active_only:
            stmt = stmt.where(TaxRate.is_active.is_(True))
        rows = self.session.execute(stmt.order_by(TaxRate.tax_code)).scalars().all()
        return [TaxRateInfo.from_model(row) for row in rows]

    def list_expense_heads(self, active_only: bool = True) -> list[ExpenseHeadInfo]:
        stmt = select(ExpenseHead).where(ExpenseHead.company_code == self.company_code)
        if active_only:
            stmt = stmt.where(ExpenseHead.is_active.is_(True))
        rows = self.session.execute(
            stmt.order_by(ExpenseHead.name, ExpenseHead.head_code)
        ).scalars().all()
        return [ExpenseHeadInfo.from_model(row) for row in rows]
