"""
PostingPolicy -- the per-company knobs the posting kernel honours.

Responsibility:
    Carries the company-level settings that influence *how* documents are
    posted (rounding mode, numbering, payment terms, credit-limit
    enforcement, receipt allocation, conflict retries, page sizes).  It never
    influences *whether* a ledger invariant applies.

Architecture position:
    Kernel > Domain.  Built from YAML by ``erp_config.bridges``; the kernel
    itself never reads configuration files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class DocumentType(str, Enum):
    SALES_INVOICE = "SALES_INVOICE"
    SALES_RETURN = "SALES_RETURN"
    PURCHASE_INVOICE = "PURCHASE_INVOICE"
    PAYMENT_RECEIPT = "PAYMENT_RECEIPT"
    SUPPLIER_PAYMENT = "SUPPLIER_PAYMENT"
    LOAN = "LOAN"
    LOAN_REPAYMENT = "LOAN_REPAYMENT"


class ReceiptAllocationMode(str, Enum):
    """How an unspecified receipt/payment is applied to open invoices."""

    OLDEST_FIRST = "oldest_first"
    NONE = "none"


DEFAULT_DOCUMENT_PREFIXES: Mapping[DocumentType, str] = MappingProxyType({
    DocumentType.SALES_INVOICE: "INV",
    DocumentType.SALES_RETURN: "RTN",
    DocumentType.PURCHASE_INVOICE: "PUR",
    DocumentType.PAYMENT_RECEIPT: "REC",
    DocumentType.SUPPLIER_PAYMENT: "PAY",
    DocumentType.LOAN: "LN",
    DocumentType.LOAN_REPAYMENT: "LNR",
})


@dataclass(frozen=True)
class PostingPolicy:
    """
    Immutable posting settings for one company.

    Guarantees:
        - rounding is a ``decimal`` rounding constant (half-up or half-even).
        - number_width >= 1, payment_terms_days >= 0, max_conflict_retries >= 0,
          1 <= default_page_size <= max_page_size.
    """

    currency: str = "USD"
    rounding: str = ROUND_HALF_UP
    default_tax_code: str | None = "GST5"
    document_prefixes: Mapping[DocumentType, str] = field(
        default_factory=lambda: DEFAULT_DOCUMENT_PREFIXES
    )
    number_width: int = 6
    payment_terms_days: int = 30
    enforce_credit_limits: bool = True
    receipt_allocation: ReceiptAllocationMode = ReceiptAllocationMode.OLDEST_FIRST
    max_conflict_retries: int = 1
    default_page_size: int = 10
    max_page_size: int = 100

    def __post_init__(self) -> None:
        if self.rounding not in (ROUND_HALF_UP, ROUND_HALF_EVEN):
            raise ValueError(f"Unsupported rounding mode: {self.rounding}")
        if self.number_width < 1:
            raise ValueError("number_width must be >= 1")
        if self.payment_terms_days < 0:
            raise ValueError("payment_terms_days must be >= 0")
        if self.max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must be >= 0")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("default_page_size must be between 1 and max_page_size")
        missing = [t.value for t in DocumentType if t not in self.document_prefixes]
        if missing:
            raise ValueError(f"Missing document prefixes for: {missing}")

    def format_document_number(self, document_type: DocumentType, value: int) -> str:
        """Format a counter value, e.g. (SALES_INVOICE, 7) -> 'INV-000007'."""
        prefix = self.document_prefixes[document_type]
        return f"{prefix}-{value:0{self.number_width}d}"

    def clamp_page_size(self, page_size: int | None) -> int:
        if page_size is None or page_size < 1:
            return self.default_page_size
        return min(page_size, self.max_page_size)


DEFAULT_POLICY = PostingPolicy()
