"""
erp_kernel.services.posting_engine -- Public entry point for every posting.

Responsibility:
    Wraps each operation of the kernel in exactly one UnitOfWork: validate
    the request, open a transaction, build the services for the company's
    PostingContext, run the operation, commit, and return a DTO.

Architecture position:
    Kernel > Services.  This is the only place that constructs posting
    services for callers; HTTP/CLI layers call these methods with an already
    authenticated ``company_code`` and ``actor_id``.

Invariants enforced:
    - One operation == one transaction.  Either every ledger moves or none.
    - Request validation that needs no data runs before a session is opened.
    - Conflicts are retried ``policy.max_conflict_retries`` times.

Failure modes:
    - Any ErpKernelError raised by a service propagates unchanged after
      rollback.
    - ConcurrencyConflictError / StorageUnavailableError from UnitOfWork.

Usage:
    engine = PostingEngine(get_session_factory(), policy_provider=provider)
    invoice = engine.create_sales_invoice("ACME", actor_id, request)
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.dtos import (
    CustomerInfo,
    ExpenseHeadInfo,
    ExpenseInfo,
    ExpenseRequest,
    LoanInfo,
    LoanRepaymentRequest,
    LoanRequest,
    PaymentInfo,
    PaymentReceiptRequest,
    ProductInfo,
    PurchaseInvoiceInfo,
    PurchaseInvoiceRequest,
    SalesInvoiceInfo,
    SalesInvoiceRequest,
    SalesReturnInfo,
    SalesReturnRequest,
    StockAdjustmentInfo,
    SupplierInfo,
    SupplierPaymentRequest,
    TaxRateInfo,
)
from erp_kernel.domain.policy import DEFAULT_POLICY, PostingPolicy
from erp_kernel.logging_config import LogContext
from erp_kernel.services.base import PostingContext
from erp_kernel.services.catalog_service import _POLICY_DEFAULT, CatalogService
from erp_kernel.services.expense_service import ExpenseService
from erp_kernel.services.loan_service import LoanService
from erp_kernel.services.party_service import PartyService
from erp_kernel.services.payment_service import PaymentService
from erp_kernel.services.purchase_service import PurchaseService
from erp_kernel.services.sales_invoice_service import SalesInvoiceService
from erp_kernel.services.sales_return_service import SalesReturnService
from erp_kernel.services.unit_of_work import UnitOfWork

T = TypeVar("T")

PolicyProvider = Callable[[str], PostingPolicy]


class PostingEngine:
    """
    Transactional facade over the posting services.

    Args:
        session_factory: Callable returning a new Session (usually the
            sessionmaker from ``erp_kernel.db.get_session_factory``).
        policy_provider: Maps a company code to its PostingPolicy.  Defaults
            to DEFAULT_POLICY for every company.
        clock: Time source for void timestamps and status derivation.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy_provider: PolicyProvider | None = None,
        clock: Clock | None = None,
        retry_backoff_seconds: float = 0.05,
    ):
        self._session_factory = session_factory
        self._policy_provider = policy_provider
        self._clock = clock or SystemClock()
        self._retry_backoff_seconds = retry_backoff_seconds

    def policy_for(self, company_code: str) -> PostingPolicy:
        if self._policy_provider is None:
            return DEFAULT_POLICY
        return self._policy_provider(company_code)

    def _run(
        self,
        operation: str,
        company_code: str,
        actor_id: UUID,
        fn: Callable[[Session, PostingContext], T],
    ) -> T:
        policy = self.policy_for(company_code)
        context = PostingContext(
            company_code=company_code,
            actor_id=actor_id,
            policy=policy,
            clock=self._clock,
        )
        uow = UnitOfWork(
            self._session_factory,
            max_retries=policy.max_conflict_retries,
            retry_backoff_seconds=self._retry_backoff_seconds,
        )
        with LogContext.bind(
            correlation_id=str(uuid4()),
            company_code=company_code,
            actor_id=str(actor_id),
            operation=operation,
        ):
            return uow.run(operation, lambda session: fn(session, context))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_sales_invoice(
        self, company_code: str, actor_id: UUID, request: SalesInvoiceRequest
    ) -> SalesInvoiceInfo:
        request.validate()
        return self._run(
            "create_sales_invoice", company_code, actor_id,
            lambda s, ctx: SalesInvoiceService(s, ctx).create_invoice(request),
        )

    def create_sales_return(
        self, company_code: str, actor_id: UUID, request: SalesReturnRequest
    ) -> SalesReturnInfo:
        request.validate()
        return self._run(
            "create_sales_return", company_code, actor_id,
            lambda s, ctx: SalesReturnService(s, ctx).create_return(request),
        )

    def create_purchase_invoice(
        self, company_code: str, actor_id: UUID, request: PurchaseInvoiceRequest
    ) -> PurchaseInvoiceInfo:
        request.validate()
        return self._run(
            "create_purchase_invoice", company_code, actor_id,
            lambda s, ctx: PurchaseService(s, ctx).create_purchase(request),
        )

    def record_payment_receipt(
        self, company_code: str, actor_id: UUID, request: PaymentReceiptRequest
    ) -> PaymentInfo:
        request.validate()
        return self._run(
            "record_payment_receipt", company_code, actor_id,
            lambda s, ctx: PaymentService(s, ctx).record_receipt(request),
        )

    def record_supplier_payment(
        self, company_code: str, actor_id: UUID, request: SupplierPaymentRequest
    ) -> PaymentInfo:
        request.validate()
        return self._run(
            "record_supplier_payment", company_code, actor_id,
            lambda s, ctx: PaymentService(s, ctx).record_supplier_payment(request),
        )

    def record_expense(
        self, company_code: str, actor_id: UUID, request: ExpenseRequest
    ) -> ExpenseInfo:
        request.validate()
        return self._run(
            "record_expense", company_code, actor_id,
            lambda s, ctx: ExpenseService(s, ctx).record_expense(request),
        )

    def record_loan(
        self, company_code: str, actor_id: UUID, request: LoanRequest
    ) -> LoanInfo:
        request.validate()
        return self._run(
            "record_loan", company_code, actor_id,
            lambda s, ctx: LoanService(s, ctx).record_loan(request),
        )

    def record_loan_repayment(
        self, company_code: str, actor_id: UUID, request: LoanRepaymentRequest
    ) -> LoanInfo:
        request.validate()
        return self._run(
            "record_loan_repayment", company_code, actor_id,
            lambda s, ctx: LoanService(s, ctx).record_loan_repayment(request),
        )

    # ------------------------------------------------------------------
    # Compensating operations
    # ------------------------------------------------------------------

    def void_sales_invoice(
        self, company_code: str, actor_id: UUID, invoice_id: UUID, reason: str
    ) -> SalesInvoiceInfo:
        return self._run(
            "void_sales_invoice", company_code, actor_id,
            lambda s, ctx: SalesInvoiceService(s, ctx).void_invoice(invoice_id, reason),
        )

    def revise_sales_invoice(
        self,
        company_code: str,
        actor_id: UUID,
        invoice_id: UUID,
        request: SalesInvoiceRequest,
        reason: str,
    ) -> tuple[SalesInvoiceInfo, SalesInvoiceInfo]:
        request.validate()
        return self._run(
            "revise_sales_invoice", company_code, actor_id,
            lambda s, ctx: SalesInvoiceService(s, ctx).revise_invoice(invoice_id, request, reason),
        )

    def void_purchase_invoice(
        self, company_code: str, actor_id: UUID, purchase_id: UUID, reason: str
    ) -> PurchaseInvoiceInfo:
        return self._run(
            "void_purchase_invoice", company_code, actor_id,
            lambda s, ctx: PurchaseService(s, ctx).void_purchase(purchase_id, reason),
        )

    def adjust_stock(
        self, company_code: str, actor_id: UUID, product_code: str, new_level: int, reason: str
    ) -> StockAdjustmentInfo:
        return self._run(
            "adjust_stock", company_code, actor_id,
            lambda s, ctx: CatalogService(s, ctx).adjust_stock(product_code, new_level, reason),
        )

    # ------------------------------------------------------------------
    # Master data
    # ------------------------------------------------------------------

    def create_tax_rate(
        self,
        company_code: str,
        actor_id: UUID,
        tax_code: str,
        name: str,
        rate: Decimal,
        tax_type: str = "GST",
    ) -> TaxRateInfo:
        return self._run(
            "create_tax_rate", company_code, actor_id,
            lambda s, ctx: CatalogService(s, ctx).create_tax_rate(tax_code, name, rate, tax_type),
        )

    def create_product(
        self,
        company_code: str,
        actor_id: UUID,
        code: str,
        name: str,
        unit_price: Decimal,
        tax_code: Any = _POLICY_DEFAULT,
        **fields: Any,
    ) -> ProductInfo:
        """Create a product.  Omit ``tax_code`` to use the company default."""
        return self._run(
            "create_product", company_code, actor_id,
            lambda s, ctx: CatalogService(s, ctx).create_product(
                code, name, unit_price, tax_code=tax_code, **fields
            ),
        )

    def update_product(
        self, company_code: str, actor_id: UUID, code: str, **fields: Any
    ) -> ProductInfo:
        return self._run(
            "update_product", company_code, actor_id,
            lambda s, ctx: CatalogService(s, ctx).update_product(code, **fields),
        )

    def create_customer(
        self, company_code: str, actor_id: UUID, code: str, name: str, **fields: Any
    ) -> CustomerInfo:
        return self._run(
            "create_customer", company_code, actor_id,
            lambda s, ctx: PartyService(s, ctx).create_customer(code, name, **fields),
        )

    def create_supplier(
        self, company_code: str, actor_id: UUID, code: str, name: str, **fields: Any
    ) -> SupplierInfo:
        return self._run(
            "create_supplier", company_code, actor_id,
            lambda s, ctx: PartyService(s, ctx).create_supplier(code, name, **fields),
        )

    def update_customer_credit(
        self,
        company_code: str,
        actor_id: UUID,
        code: str,
        credit_limit: Decimal | None = None,
        credit_terms_days: int | None = None,
    ) -> CustomerInfo:
        return self._run(
            "update_customer_credit", company_code, actor_id,
            lambda s, ctx: PartyService(s, ctx).update_customer_credit(
                code, credit_limit, credit_terms_days
            ),
        )

    def set_customer_active(
        self, company_code: str, actor_id: UUID, code: str, is_active: bool
    ) -> CustomerInfo:
        return self._run(
            "set_customer_active", company_code, actor_id,
            lambda s, ctx: PartyService(s, ctx).set_customer_active(code, is_active),
        )

    def set_supplier_active(
        self, company_code: str, actor_id: UUID, code: str, is_active: bool
    ) -> SupplierInfo:
        return self._run(
            "set_supplier_active", company_code, actor_id,
            lambda s, ctx: PartyService(s, ctx).set_supplier_active(code, is_active),
        )

    def create_expense_head(
        self,
        company_code: str,
        actor_id: UUID,
        head_code: str,
        name: str,
        description: str | None = None,
    ) -> ExpenseHeadInfo:
        return self._run(
            "create_expense_head", company_code, actor_id,
            lambda s, ctx: ExpenseService(s, ctx).create_expense_head(head_code, name, description),
        )

    def deactivate_expense_head(
        self, company_code: str, actor_id: UUID, head_code: str
    ) -> ExpenseHeadInfo:
        return self._run(
            "deactivate_expense_head", company_code, actor_id,
            lambda s, ctx: ExpenseService(s, ctx).deactivate_expense_head(head_code),
        )
