"""Selectors for the ERP kernel (read side)."""

from erp_kernel.selectors.base import BaseSelector, Page
from erp_kernel.selectors.cash_book_selector import CashBookSelector, CashTotals
from erp_kernel.selectors.document_selector import DocumentSelector
from erp_kernel.selectors.master_data_selector import MasterDataSelector
from erp_kernel.selectors.query_facade import CompanyReader, QueryFacade
from erp_kernel.selectors.report_selector import (
    DashboardMetrics,
    ExpenseBreakdown,
    InventoryValuation,
    MonthlySales,
    PartyBalanceRow,
    ProductSalesRow,
    ReportSelector,
    SalesSummary,
    TransactionHistory,
)

__all__ = [
    "BaseSelector",
    "CashBookSelector",
    "CashTotals",
    "CompanyReader",
    "DashboardMetrics",
    "DocumentSelector",
    "ExpenseBreakdown",
    "InventoryValuation",
    "MasterDataSelector",
    "MonthlySales",
    "Page",
    "PartyBalanceRow",
    "ProductSalesRow",
    "QueryFacade",
    "ReportSelector",
    "SalesSummary",
    "TransactionHistory",
]
