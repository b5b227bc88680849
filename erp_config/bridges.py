"""
Config -> Kernel Bridges.

Functions that convert CompanySettings into kernel inputs.  They live in
erp_config (the producer) because the kernel must never import erp_config.

Usage:
    from erp_config.bridges import build_policy_provider

    engine = PostingEngine(session_factory, policy_provider=build_policy_provider())
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import MappingProxyType

from erp_config.schema import CompanySettings
from erp_kernel.db.types import rounding_mode
from erp_kernel.domain.policy import DocumentType, PostingPolicy, ReceiptAllocationMode

_DOCUMENT_KEYS = {
    "sales_invoice": DocumentType.SALES_INVOICE,
    "sales_return": DocumentType.SALES_RETURN,
    "purchase_invoice": DocumentType.PURCHASE_INVOICE,
    "payment_receipt": DocumentType.PAYMENT_RECEIPT,
    "supplier_payment": DocumentType.SUPPLIER_PAYMENT,
    "loan": DocumentType.LOAN,
    "loan_repayment": DocumentType.LOAN_REPAYMENT,
}


def build_posting_policy(settings: CompanySettings) -> PostingPolicy:
    """Translate validated settings into the kernel's PostingPolicy."""
    prefixes = MappingProxyType({
        _DOCUMENT_KEYS[key]: prefix for key, prefix in settings.numbering.prefixes
    })
    return PostingPolicy(
        currency=settings.currency,
        rounding=rounding_mode(settings.rounding),
        default_tax_code=settings.default_tax_code,
        document_prefixes=prefixes,
        number_width=settings.numbering.width,
        payment_terms_days=settings.payment_terms_days,
        enforce_credit_limits=settings.enforce_credit_limits,
        receipt_allocation=ReceiptAllocationMode(settings.receipt_allocation),
        max_conflict_retries=settings.max_conflict_retries,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


def build_policy_provider(config_dir: Path | None = None) -> Callable[[str], PostingPolicy]:
    """
    Return a ``company_code -> PostingPolicy`` callable for PostingEngine.

    Policies are built once per company and reused.
    """
    from erp_config import get_company_settings

    cache: dict[str, PostingPolicy] = {}

    def provider(company_code: str) -> PostingPolicy:
        policy = cache.get(company_code)
        if policy is None:
            policy = build_posting_policy(get_company_settings(company_code, config_dir))
            cache[company_code] = policy
        return policy

    return provider
