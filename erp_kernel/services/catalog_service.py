"""
CatalogService -- products, tax rates and direct stock adjustments.

Responsibility:
    Maintains the product catalog and tax-rate table, resolves the tax rate
    that applies to a product, and takes the ordered row locks on products
    that every stock-moving posting needs.

Architecture position:
    Kernel > Services.  Used directly by PostingEngine for master data and
    by the sales, return and purchase services for locking and tax lookup.

Invariants enforced:
    STOCK_PAIRING -- ``adjust_stock`` is the only way to set stock outside a
        document, and it records a StockAdjustment row.  ``update_product``
        never touches stock.
    Deadlock avoidance -- ``lock_products`` always locks in product-code
        order.

Failure modes:
    - ProductNotFoundError, TaxRateNotFoundError, DuplicateCodeError,
      ValidationFailedError.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select

from erp_kernel.db.types import ZERO
from erp_kernel.domain.dtos import ProductInfo, StockAdjustmentInfo, TaxRateInfo
from erp_kernel.domain.status import StockStatus, classify_stock
from erp_kernel.exceptions import (
    DuplicateCodeError,
    ProductNotFoundError,
    TaxRateNotFoundError,
    ValidationFailedError,
)
from erp_kernel.logging_config import get_logger
from erp_kernel.models.catalog import Product, StockAdjustment, TaxRate
from erp_kernel.services.base import BaseService
from erp_kernel.services.invariant_guard import check_stock

logger = get_logger("services.catalog")

# Marker for "caller did not say", as opposed to an explicit None (untaxed).
_POLICY_DEFAULT: Any = object()


class CatalogService(BaseService[Product]):
    """
    Service for the product catalog.

    Guarantees:
        - Returns ProductInfo / TaxRateInfo DTOs from public methods.
        - Tax rule: no tax_code means 0 %; a tax_code must resolve to a
          TaxRate row of the same company.  There is no silent fallback
          rate at posting time.
    """

    # ------------------------------------------------------------------
    # Tax rates
    # ------------------------------------------------------------------

    def _find_tax_rate(self, tax_code: str) -> TaxRate | None:
        return self.session.execute(
            select(TaxRate).where(
                TaxRate.company_code == self.company_code,
                TaxRate.tax_code == tax_code,
            )
        ).scalar_one_or_none()

    def create_tax_rate(
        self,
        tax_code: str,
        name: str,
        rate: Decimal,
        tax_type: str = "GST",
    ) -> TaxRateInfo:
        if not tax_code:
            raise ValidationFailedError("tax_code", "tax code is required")
        if rate < 0:
            raise ValidationFailedError("rate", "tax rate must not be negative")
        if self._find_tax_rate(tax_code) is not None:
            raise DuplicateCodeError("TaxRate", tax_code)
        tax_rate = TaxRate(
            company_code=self.company_code,
            tax_code=tax_code,
            name=name,
            rate=rate,
            tax_type=tax_type,
            created_by_id=self.actor_id,
        )
        self.session.add(tax_rate)
        self.session.flush()
        logger.info("tax_rate_created", extra={"tax_code": tax_code, "rate": rate})
        return TaxRateInfo.from_model(tax_rate)

    def resolve_tax_rate(self, product: Product) -> Decimal:
        """Percentage tax rate for a product under the canonical tax rule."""
        if product.tax_code is None:
            return Decimal("0")
        tax_rate = self._find_tax_rate(product.tax_code)
        if tax_rate is None:
            raise TaxRateNotFoundError(product.tax_code, self.company_code)
        return Decimal(str(tax_rate.rate))

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def _find_product(self, code: str) -> Product | None:
        return self.session.execute(
            select(Product).where(
                Product.company_code == self.company_code,
                Product.code == code,
            )
        ).scalar_one_or_none()

    def _get_product(self, code: str, lock: bool = False) -> Product:
        stmt = select(Product).where(
            Product.company_code == self.company_code,
            Product.code == code,
        )
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        product = self.session.execute(stmt).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(code, self.company_code)
        return product

    def get_product(self, code: str) -> ProductInfo:
        return ProductInfo.from_model(self._get_product(code))

    def lock_products(self, codes: Iterable[str]) -> dict[str, Product]:
        """
        Lock product rows ``FOR UPDATE`` in code order.

        Raises:
            ProductNotFoundError: for the first (in code order) unknown code.
        """
        ordered = sorted(set(codes))
        rows = self.session.execute(
            select(Product)
            .where(Product.company_code == self.company_code, Product.code.in_(ordered))
            .order_by(Product.code)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        found = {p.code: p for p in rows}
        for code in ordered:
            if code not in found:
                raise ProductNotFoundError(code, self.company_code)
        return found

    def _validate_tax_code(self, tax_code: str | None) -> None:
        if tax_code is not None and self._find_tax_rate(tax_code) is None:
            raise TaxRateNotFoundError(tax_code, self.company_code)

    def create_product(
        self,
        code: str,
        name: str,
        unit_price: Decimal,
        purchase_price: Decimal = ZERO,
        opening_stock: int = 0,
        min_stock_level: int = 0,
        category_code: str | None = None,
        tax_code: str | None = _POLICY_DEFAULT,
    ) -> ProductInfo:
        """
        Create a product.

        Args:
            tax_code: Omit to apply the company's default tax code; pass None
                for an untaxed product.
            opening_stock: Initial quantity on hand.  Recorded as a
                StockAdjustment so the first stock movement is paired too.
        """
        if not code or not name:
            raise ValidationFailedError("code", "product code and name are required")
        if unit_price < 0 or purchase_price < 0:
            raise ValidationFailedError("unit_price", "prices must not be negative")
        if opening_stock < 0 or min_stock_level < 0:
            raise ValidationFailedError("opening_stock", "quantities must not be negative")
        if self._find_product(code) is not None:
            raise DuplicateCodeError("Product", code)

        if tax_code is _POLICY_DEFAULT:
            tax_code = self.policy.default_tax_code
        self._validate_tax_code(tax_code)

        product = Product(
            company_code=self.company_code,
            code=code,
            name=name,
            category_code=category_code,
            unit_price=unit_price,
            purchase_price=purchase_price,
            current_stock=0,
            min_stock_level=min_stock_level,
            tax_code=tax_code,
            created_by_id=self.actor_id,
        )
        self.session.add(product)
        self.session.flush()
        if opening_stock:
            self._record_adjustment(product, opening_stock, "Opening stock")
        logger.info("product_created", extra={"product_code": code, "tax_code": tax_code})
        return ProductInfo.from_model(product)

    def update_product(
        self,
        code: str,
        name: str | None = None,
        unit_price: Decimal | None = None,
        purchase_price: Decimal | None = None,
        min_stock_level: int | None = None,
        category_code: str | None = None,
        tax_code: str | None = _POLICY_DEFAULT,
        is_active: bool | None = None,
    ) -> ProductInfo:
        """Update descriptive fields and prices.  Stock is never changed here."""
        product = self._get_product(code, lock=True)
        if name is not None:
            product.name = name
        if unit_price is not None:
            if unit_price < 0:
                raise ValidationFailedError("unit_price", "must not be negative")
            product.unit_price = unit_price
        if purchase_price is not None:
            if purchase_price < 0:
                raise ValidationFailedError("purchase_price", "must not be negative")
            product.purchase_price = purchase_price
        if min_stock_level is not None:
            if min_stock_level < 0:
                raise ValidationFailedError("min_stock_level", "must not be negative")
            product.min_stock_level = min_stock_level
        if category_code is not None:
            product.category_code = category_code
        if tax_code is not _POLICY_DEFAULT:
            self._validate_tax_code(tax_code)
            product.tax_code = tax_code
        if is_active is not None:
            product.is_active = is_active
        self._stamp(product)
        self.session.flush()
        return ProductInfo.from_model(product)

    def _record_adjustment(self, product: Product, new_level: int, reason: str) -> StockAdjustment:
        before = product.current_stock
        adjustment = StockAdjustment(
            company_code=self.company_code,
            product_id=product.id,
            product_code=product.code,
            quantity_before=before,
            quantity_after=new_level,
            quantity_delta=new_level - before,
            reason=reason,
            created_by_id=self.actor_id,
        )
        product.current_stock = new_level
        self._stamp(product)
        check_stock(product.code, product.current_stock)
        self.session.add(adjustment)
        self.session.flush()
        return adjustment

    def adjust_stock(self, code: str, new_level: int, reason: str) -> StockAdjustmentInfo:
        """Set a product's stock directly (count correction), recorded as a document."""
        if new_level < 0:
            raise ValidationFailedError("new_level", "stock level must not be negative")
        if not reason or not reason.strip():
            raise ValidationFailedError("reason", "an adjustment reason is required")
        product = self._get_product(code, lock=True)
        adjustment = self._record_adjustment(product, new_level, reason)
        logger.info(
            "stock_adjusted",
            extra={
                "product_code": code,
                "quantity_before": adjustment.quantity_before,
                "quantity_after": adjustment.quantity_after,
            },
        )
        self.warn_if_low(product)
        return StockAdjustmentInfo.from_model(adjustment)

    def warn_if_low(self, product: Product) -> None:
        status = classify_stock(product.current_stock, product.min_stock_level)
        if status is not StockStatus.IN_STOCK:
            logger.warning(
                "stock_below_minimum",
                extra={
                    "product_code": product.code,
                    "current_stock": product.current_stock,
                    "min_stock_level": product.min_stock_level,
                    "stock_status": status.value,
                },
            )
