"""Posting services for the ERP kernel (write side)."""

from erp_kernel.services.base import BaseService, PostingContext
from erp_kernel.services.cash_book_service import CashBookService
from erp_kernel.services.catalog_service import CatalogService
from erp_kernel.services.expense_service import ExpenseService
from erp_kernel.services.loan_service import LoanService
from erp_kernel.services.party_service import PartyService
from erp_kernel.services.payment_service import PaymentService
from erp_kernel.services.posting_engine import PostingEngine
from erp_kernel.services.purchase_service import PurchaseService
from erp_kernel.services.sales_invoice_service import SalesInvoiceService
from erp_kernel.services.sales_return_service import SalesReturnService
from erp_kernel.services.sequence_service import SequenceService
from erp_kernel.services.unit_of_work import UnitOfWork

__all__ = [
    "BaseService",
    "CashBookService",
    "CatalogService",
    "ExpenseService",
    "LoanService",
    "PartyService",
    "PaymentService",
    "PostingContext",
    "PostingEngine",
    "PurchaseService",
    "SalesInvoiceService",
    "SalesReturnService",
    "SequenceService",
    "UnitOfWork",
]
