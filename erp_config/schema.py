"""
CompanySettings schema.

The human-authored, reviewable settings of one company, parsed from YAML by
the loader and turned into the kernel's PostingPolicy by the bridges.

  CompanySettings = source artifact (YAML, versioned, checksummed)
  PostingPolicy   = runtime artifact (what the kernel honours)
"""

from __future__ import annotations

from dataclasses import dataclass, field

_ROUNDING_NAMES = ("half_up", "half_even")
_ALLOCATION_NAMES = ("oldest_first", "none")
_DOCUMENT_KEYS = (
    "sales_invoice",
    "sales_return",
    "purchase_invoice",
    "payment_receipt",
    "supplier_payment",
    "loan",
    "loan_repayment",
)


@dataclass(frozen=True)
class NumberingSettings:
    """Document number format: ``<prefix>-<zero-padded counter>``."""

    prefixes: tuple[tuple[str, str], ...] = (
        ("sales_invoice", "INV"),
        ("sales_return", "RTN"),
        ("purchase_invoice", "PUR"),
        ("payment_receipt", "REC"),
        ("supplier_payment", "PAY"),
        ("loan", "LN"),
        ("loan_repayment", "LNR"),
    )
    width: int = 6

    def __post_init__(self) -> None:
        if self.width < 1:
            raise ValueError(f"numbering.width must be >= 1, got {self.width}")
        keys = {key for key, _ in self.prefixes}
        unknown = keys - set(_DOCUMENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown document types in numbering.prefixes: {sorted(unknown)}")
        missing = set(_DOCUMENT_KEYS) - keys
        if missing:
            raise ValueError(f"Missing numbering.prefixes for: {sorted(missing)}")
        for key, prefix in self.prefixes:
            if not prefix:
                raise ValueError(f"numbering.prefixes.{key} must not be empty")

    def prefix_for(self, document_key: str) -> str:
        return dict(self.prefixes)[document_key]


@dataclass(frozen=True)
class CompanySettings:
    """
    Settings for one company (or the default set).

    Guarantees:
        - Values are validated on construction; bad values raise ValueError.
    """

    company_code: str
    currency: str = "USD"
    rounding: str = "half_up"
    default_tax_code: str | None = "GST5"
    payment_terms_days: int = 30
    enforce_credit_limits: bool = True
    receipt_allocation: str = "oldest_first"
    max_conflict_retries: int = 1
    default_page_size: int = 10
    max_page_size: int = 100
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.company_code:
            raise ValueError("company_code is required")
        if len(self.currency) != 3:
            raise ValueError(f"currency must be an ISO 4217 code, got {self.currency!r}")
        if self.rounding not in _ROUNDING_NAMES:
            raise ValueError(f"rounding must be one of {_ROUNDING_NAMES}, got {self.rounding!r}")
        if self.receipt_allocation not in _ALLOCATION_NAMES:
            raise ValueError(
                f"receipt_allocation must be one of {_ALLOCATION_NAMES}, "
                f"got {self.receipt_allocation!r}"
            )
        if self.payment_terms_days < 0:
            raise ValueError("payment_terms_days must be >= 0")
        if self.max_conflict_retries < 0:
            raise ValueError("max_conflict_retries must be >= 0")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError("default_page_size must be between 1 and max_page_size")
