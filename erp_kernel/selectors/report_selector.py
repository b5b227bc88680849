"""
Module: erp_kernel.selectors.report_selector
Responsibility: Aggregate reports over posted documents -- sales summary,
    sales by product, inventory valuation, low stock, party balances,
    expense breakdown, transaction history, dashboard metrics and the
    monthly sales trend.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Voided invoices never count towards revenue, quantities or
      receivables.
    - Empty result sets give zero aggregates, never None.
    - Every stored number passes through coerce_money / coerce_quantity
      before arithmetic; drivers may hand back str, float or None.

Audit relevance:
    Reports are projections only.  They read the same rows the posting
    services write and hold no state of their own.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from erp_kernel.db.types import ZERO, coerce_money, coerce_quantity
from erp_kernel.domain.dtos import CashEntryInfo, ProductInfo, SalesInvoiceInfo
from erp_kernel.models.cash_ledger import CashEntryType, CashLedgerEntry
from erp_kernel.models.catalog import Product
from erp_kernel.models.expense import Expense, ExpenseHead
from erp_kernel.models.party import Customer, Supplier
from erp_kernel.models.sales import SalesInvoice, SalesInvoiceItem
from erp_kernel.selectors.base import BaseSelector
from erp_kernel.selectors.cash_book_selector import CashBookSelector

_MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


# =============================================================================
# Report rows
# =============================================================================


@dataclass(frozen=True)
class SalesSummary:
    invoice_count: int
    subtotal: Decimal
    tax_amount: Decimal
    total_revenue: Decimal
    returned_amount: Decimal
    outstanding: Decimal
    cash_collected: Decimal


@dataclass(frozen=True)
class ProductSalesRow:
    product_code: str
    product_name: str
    quantity_sold: int
    revenue: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class InventoryValuationRow:
    product_code: str
    product_name: str
    current_stock: int
    purchase_price: Decimal
    unit_price: Decimal
    cost_value: Decimal
    retail_value: Decimal


@dataclass(frozen=True)
class InventoryValuation:
    rows: tuple[InventoryValuationRow, ...]
    total_units: int
    total_cost_value: Decimal
    total_retail_value: Decimal


@dataclass(frozen=True)
class PartyBalanceRow:
    party_code: str
    party_name: str
    outstanding_balance: Decimal
    credit_limit: Decimal | None
    is_active: bool


@dataclass(frozen=True)
class ExpenseHeadTotal:
    head_code: str
    head_name: str
    total: Decimal
    count: int


@dataclass(frozen=True)
class ExpenseBreakdown:
    total: Decimal
    count: int
    by_head: tuple[ExpenseHeadTotal, ...]


@dataclass(frozen=True)
class TransactionHistory:
    entries: tuple[CashEntryInfo, ...]
    total_inflow: Decimal
    total_outflow: Decimal

    @property
    def net(self) -> Decimal:
        return self.total_inflow - self.total_outflow


@dataclass(frozen=True)
class DashboardMetrics:
    total_revenue: Decimal
    pending_receivables: Decimal
    low_stock_count: int
    customer_count: int
    recent_invoices: tuple[SalesInvoiceInfo, ...]
    top_products: tuple[ProductSalesRow, ...]


@dataclass(frozen=True)
class MonthlySales:
    year: int
    month: int
    label: str
    sales: Decimal


# =============================================================================
# Selector
# =============================================================================


class ReportSelector(BaseSelector[SalesInvoice]):
    """
    Selector for aggregate reports.

    Guarantees:
        - All amounts are 2-dp Decimals; all counts are ints.
        - Ordering inside every list is total, so repeated calls with no
          intervening writes return identical results.
    """

    def _live_invoices(self, date_from: date | None, date_to: date | None):
        conditions = [
            SalesInvoice.company_code == self.company_code,
            SalesInvoice.is_voided.is_(False),
        ]
        if date_from is not None:
            conditions.append(SalesInvoice.invoice_date >= date_from)
        if date_to is not None:
            conditions.append(SalesInvoice.invoice_date <= date_to)
        return conditions

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def sales_summary(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SalesSummary:
        """
        Sales over a date range.

        ``cash_collected`` is cash actually received in the range: SALES
        (paid-on-invoice) plus RECEIPT debits in the cash book.
        """
        count, subtotal, tax, total, returned, outstanding = self.session.execute(
            select(
                func.count(SalesInvoice.id),
                func.coalesce(func.sum(SalesInvoice.subtotal), 0),
                func.coalesce(func.sum(SalesInvoice.tax_amount), 0),
                func.coalesce(func.sum(SalesInvoice.total_amount), 0),
                func.coalesce(func.sum(SalesInvoice.returned_amount), 0),
                func.coalesce(func.sum(SalesInvoice.balance_due), 0),
            ).where(*self._live_invoices(date_from, date_to))
        ).one()

        cash_stmt = select(func.coalesce(func.sum(CashLedgerEntry.debit_amount), 0)).where(
            CashLedgerEntry.company_code == self.company_code,
            CashLedgerEntry.entry_type.in_(
                (CashEntryType.SALES.value, CashEntryType.RECEIPT.value)
            ),
        )
        if date_from is not None:
            cash_stmt = cash_stmt.where(CashLedgerEntry.entry_date >= date_from)
        if date_to is not None:
            cash_stmt = cash_stmt.where(CashLedgerEntry.entry_date <= date_to)
        collected = self.session.execute(cash_stmt).scalar_one()

        return SalesSummary(
            invoice_count=coerce_quantity(count),
            subtotal=coerce_money(subtotal),
            tax_amount=coerce_money(tax),
            total_revenue=coerce_money(total),
            returned_amount=coerce_money(returned),
            outstanding=coerce_money(outstanding),
            cash_collected=coerce_money(collected),
        )

    def sales_by_product(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int | None = None,
    ) -> list[ProductSalesRow]:
        """Quantity and pre-tax revenue per product, highest revenue first."""
        revenue = func.coalesce(func.sum(SalesInvoiceItem.line_total), 0)
        stmt = (
            select(
                SalesInvoiceItem.product_code,
                func.sum(SalesInvoiceItem.quantity),
                revenue,
                func.coalesce(func.sum(SalesInvoiceItem.tax_amount), 0),
            )
            .join(SalesInvoice, SalesInvoice.id == SalesInvoiceItem.invoice_id)
            .where(*self._live_invoices(date_from, date_to))
            .group_by(SalesInvoiceItem.product_code)
            .order_by(revenue.desc(), SalesInvoiceItem.product_code)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = self.session.execute(stmt).all()

        names = self._product_names([code for code, *_ in rows])
        return [
            ProductSalesRow(
                product_code=code,
                product_name=names.get(code, code),
                quantity_sold=coerce_quantity(qty),
                revenue=coerce_money(rev),
                tax_amount=coerce_money(tax),
            )
            for code, qty, rev, tax in rows
        ]

    def _product_names(self, codes: list[str]) -> dict[str, str]:
        if not codes:
            return {}
        return dict(
            self.session.execute(
                select(Product.code, Product.name).where(
                    Product.company_code == self.company_code,
                    Product.code.in_(codes),
                )
            ).all()
        )

    def monthly_sales_trend(self, months: int = 6, as_of: date | None = None) -> list[MonthlySales]:
        """
        Settled sales per calendar month for the last ``months`` months,
        oldest first, ending with the month of ``as_of``.

        Only fully settled invoices (balance_due <= 0) count, so the trend
        shows realised sales.
        """
        end = self._today(as_of)
        buckets: list[tuple[int, int]] = []
        year, month = end.year, end.month
        for _ in range(max(months, 0)):
            buckets.append((year, month))
            month -= 1
            if month == 0:
                year, month = year - 1, 12
        buckets.reverse()
        if not buckets:
            return []

        first_year, first_month = buckets[0]
        rows = self.session.execute(
            select(SalesInvoice.invoice_date, SalesInvoice.total_amount).where(
                *self._live_invoices(date(first_year, first_month, 1), end),
                SalesInvoice.balance_due <= 0,
            )
        ).all()
        totals = {bucket: ZERO for bucket in buckets}
        for invoice_date, total in rows:
            key = (invoice_date.year, invoice_date.month)
            if key in totals:
                totals[key] += coerce_money(total)

        return [
            MonthlySales(year=y, month=m, label=_MONTH_NAMES[m - 1], sales=totals[(y, m)])
            for y, m in buckets
        ]

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def inventory_valuation(self, active_only: bool = False) -> InventoryValuation:
        stmt = select(Product).where(Product.company_code == self.company_code)
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        products = self.session.execute(stmt.order_by(Product.code)).scalars().all()

        rows = []
        total_units = 0
        total_cost = ZERO
        total_retail = ZERO
        for product in products:
            stock = coerce_quantity(product.current_stock)
            cost = coerce_money(product.purchase_price)
            price = coerce_money(product.unit_price)
            row = InventoryValuationRow(
                product_code=product.code,
                product_name=product.name,
                current_stock=stock,
                purchase_price=cost,
                unit_price=price,
                cost_value=coerce_money(cost * stock),
                retail_value=coerce_money(price * stock),
            )
            rows.append(row)
            total_units += stock
            total_cost += row.cost_value
            total_retail += row.retail_value
        return InventoryValuation(
            rows=tuple(rows),
            total_units=total_units,
            total_cost_value=total_cost,
            total_retail_value=total_retail,
        )

    def low_stock(self) -> list[ProductInfo]:
        """Products at or below their minimum level, emptiest first."""
        rows = self.session.execute(
            select(Product)
            .where(
                Product.company_code == self.company_code,
                Product.current_stock <= Product.min_stock_level,
            )
            .order_by(Product.current_stock, Product.code)
        ).scalars().all()
        return [ProductInfo.from_model(row) for row in rows]

    # ------------------------------------------------------------------
    # Parties
    # ------------------------------------------------------------------

    def customer_balances(self, include_zero: bool = False) -> list[PartyBalanceRow]:
        stmt = select(Customer).where(Customer.company_code == self.company_code)
        if not include_zero:
            stmt = stmt.where(Customer.outstanding_balance != 0)
        rows = self.session.execute(
            stmt.order_by(Customer.outstanding_balance.desc(), Customer.code)
        ).scalars().all()
        return [
            PartyBalanceRow(
                party_code=c.code,
                party_name=c.name,
                outstanding_balance=coerce_money(c.outstanding_balance),
                credit_limit=coerce_money(c.credit_limit),
                is_active=c.is_active,
            )
            for c in rows
        ]

    def vendor_balances(self, include_zero: bool = False) -> list[PartyBalanceRow]:
        stmt = select(Supplier).where(Supplier.company_code == self.company_code)
        if not include_zero:
            stmt = stmt.where(Supplier.outstanding_balance != 0)
        rows = self.session.execute(
            stmt.order_by(Supplier.outstanding_balance.desc(), Supplier.code)
        ).scalars().all()
        return [
            PartyBalanceRow(
                party_code=s.code,
                party_name=s.name,
                outstanding_balance=coerce_money(s.outstanding_balance),
                credit_limit=None,
                is_active=s.is_active,
            )
            for s in rows
        ]

    # ------------------------------------------------------------------
    # Cash
    # ------------------------------------------------------------------

    def expense_breakdown(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> ExpenseBreakdown:
        amount = func.coalesce(func.sum(Expense.amount), 0)
        stmt = (
            select(Expense.head_code, amount, func.count(Expense.id))
            .where(Expense.company_code == self.company_code)
            .group_by(Expense.head_code)
            .order_by(amount.desc(), Expense.head_code)
        )
        if date_from is not None:
            stmt = stmt.where(Expense.expense_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Expense.expense_date <= date_to)
        rows = self.session.execute(stmt).all()

        names = dict(
            self.session.execute(
                select(ExpenseHead.head_code, ExpenseHead.name).where(
                    ExpenseHead.company_code == self.company_code
                )
            ).all()
        )
        by_head = tuple(
            ExpenseHeadTotal(
                head_code=code,
                head_name=names.get(code, code),
                total=coerce_money(total),
                count=coerce_quantity(count),
            )
            for code, total, count in rows
        )
        return ExpenseBreakdown(
            total=sum((h.total for h in by_head), ZERO),
            count=sum(h.count for h in by_head),
            by_head=by_head,
        )

    def transaction_history(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> TransactionHistory:
        """Every cash entry in the range, oldest first, with totals."""
        stmt = select(CashLedgerEntry).where(CashLedgerEntry.company_code == self.company_code)
        if date_from is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(CashLedgerEntry.entry_date <= date_to)
        rows = self.session.execute(
            stmt.order_by(
                CashLedgerEntry.entry_date, CashLedgerEntry.created_at, CashLedgerEntry.id
            )
        ).scalars().all()
        totals = CashBookSelector(
            self.session, self.company_code, self.policy, self.clock
        ).totals(date_from, date_to)
        return TransactionHistory(
            entries=tuple(CashEntryInfo.from_model(row) for row in rows),
            total_inflow=totals.total_inflow,
            total_outflow=totals.total_outflow,
        )

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def dashboard(
        self,
        as_of: date | None = None,
        recent_limit: int = 5,
        top_limit: int = 10,
    ) -> DashboardMetrics:
        """
        Headline numbers for the home screen.

        ``total_revenue`` counts settled invoices only; ``pending_receivables``
        is the sum of open balances.
        """
        today = self._today(as_of)
        live = self._live_invoices(None, None)
        revenue = self.session.execute(
            select(func.coalesce(func.sum(SalesInvoice.total_amount), 0)).where(
                *live, SalesInvoice.balance_due <= 0
            )
        ).scalar_one()
        pending = self.session.execute(
            select(func.coalesce(func.sum(SalesInvoice.balance_due), 0)).where(
                *live, SalesInvoice.balance_due > 0
            )
        ).scalar_one()
        low_stock_count = self.session.execute(
            select(func.count(Product.id)).where(
                Product.company_code == self.company_code,
                Product.current_stock <= Product.min_stock_level,
            )
        ).scalar_one()
        customer_count = self.session.execute(
            select(func.count(Customer.id)).where(Customer.company_code == self.company_code)
        ).scalar_one()
        recent = self.session.execute(
            select(SalesInvoice)
            .where(SalesInvoice.company_code == self.company_code)
            .order_by(
                SalesInvoice.invoice_date.desc(), SalesInvoice.number.desc(), SalesInvoice.id
            )
            .limit(recent_limit)
        ).scalars().all()

        return DashboardMetrics(
            total_revenue=coerce_money(revenue),
            pending_receivables=coerce_money(pending),
            low_stock_count=coerce_quantity(low_stock_count),
            customer_count=coerce_quantity(customer_count),
            recent_invoices=tuple(SalesInvoiceInfo.from_model(inv, as_of=today) for inv in recent),
            top_products=tuple(self.sales_by_product(limit=top_limit)),
        )
