"""ORM models for the ERP posting kernel."""

from erp_kernel.models.cash_ledger import CashEntryType, CashLedgerEntry
from erp_kernel.models.catalog import Product, StockAdjustment, TaxRate
from erp_kernel.models.expense import Expense, ExpenseHead
from erp_kernel.models.loan import Loan, LoanRepayment
from erp_kernel.models.party import Customer, Supplier
from erp_kernel.models.payments import (
    PaymentAllocation,
    PaymentReceipt,
    PaymentStatus,
    ReceiptAllocation,
    SupplierPayment,
)
from erp_kernel.models.purchase import PurchaseInvoice, PurchaseInvoiceItem
from erp_kernel.models.sales import (
    ReturnStatus,
    SalesInvoice,
    SalesInvoiceItem,
    SalesReturn,
    SalesReturnItem,
    Settlement,
)
from erp_kernel.models.sequence import SequenceCounter

__all__ = [
    "CashEntryType",
    "CashLedgerEntry",
    "Customer",
    "Expense",
    "ExpenseHead",
    "Loan",
    "LoanRepayment",
    "PaymentAllocation",
    "PaymentReceipt",
    "PaymentStatus",
    "Product",
    "PurchaseInvoice",
    "PurchaseInvoiceItem",
    "ReceiptAllocation",
    "ReturnStatus",
    "SalesInvoice",
    "SalesInvoiceItem",
    "SalesReturn",
    "SalesReturnItem",
    "SequenceCounter",
    "Settlement",
    "StockAdjustment",
    "Supplier",
    "TaxRate",
]
