"""
Typed exception hierarchy for the ERP posting kernel.

Every error raised by a posting operation or selector is a subclass of
``ErpKernelError``.  Each class carries a machine-readable ``code`` class
attribute, and each instance stores its context as plain attributes so that
callers (HTTP layer, CLI, logs) never parse message strings.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ErpKernelError (base)
    |
    +-- NotFoundError
    |   +-- ProductNotFoundError
    |   +-- CustomerNotFoundError
    |   +-- SupplierNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- PurchaseInvoiceNotFoundError
    |   +-- ExpenseHeadNotFoundError
    |   +-- TaxRateNotFoundError
    |   +-- LoanNotFoundError
    |
    +-- ValidationFailedError
    |   +-- PartyInactiveError
    |   +-- ExpenseHeadInactiveError
    |   +-- DuplicateCodeError
    |   +-- InvoiceNotVoidableError
    |
    +-- PostingError
    |   +-- StockInsufficientError
    |   +-- ReturnExceedsInvoicedError
    |   +-- CreditLimitExceededError
    |   +-- LoanOverRepaymentError
    |   +-- InvariantViolationError
    |
    +-- ConcurrencyConflictError
    |
    +-- StorageUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | PRODUCT_NOT_FOUND           | Product code unknown in company
                | CUSTOMER_NOT_FOUND          | Customer code unknown in company
                | SUPPLIER_NOT_FOUND          | Supplier code unknown in company
                | INVOICE_NOT_FOUND           | Sales invoice id unknown in company
                | PURCHASE_INVOICE_NOT_FOUND  | Purchase invoice id unknown
                | EXPENSE_HEAD_NOT_FOUND      | Expense head code unknown
                | TAX_RATE_NOT_FOUND          | Product tax code has no TaxRate row
                | LOAN_NOT_FOUND              | Loan id unknown in company
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_FAILED           | Request rejected before any write
                | PARTY_INACTIVE              | Customer/supplier deactivated
                | EXPENSE_HEAD_INACTIVE       | Expense head deactivated
                | DUPLICATE_CODE              | Master-data code already used
                | INVOICE_NOT_VOIDABLE        | Voided, allocated or returned invoice
----------------|-----------------------------|-----------------------------------------
Posting         | STOCK_INSUFFICIENT          | Requested qty > current stock
                | RETURN_EXCEEDS_INVOICED     | Cumulative return > invoiced qty
                | CREDIT_LIMIT_EXCEEDED       | PENDING sale over customer limit
                | LOAN_OVER_REPAYMENT         | Repayment > outstanding loan amount
                | INVARIANT_VIOLATION         | Ledger invariant broken (bug guard)
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENCY_CONFLICT        | Serialization/lock failure after retry
Storage         | STORAGE_UNAVAILABLE         | Database unreachable

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        engine.create_sales_invoice("ACME", actor, request)
    except StockInsufficientError as e:
        return {"error": e.code, "product": e.product_code, "available": e.available}
    except ConcurrencyConflictError:
        # Already retried inside the unit of work; surface to the client.
        ...
"""

from decimal import Decimal


class ErpKernelError(Exception):
    """
    Base exception for all ERP kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: str = "ERP_KERNEL_ERROR"


# Not found


class NotFoundError(ErpKernelError):
    """Base exception for unknown entities."""

    code: str = "NOT_FOUND"
    entity: str = "entity"

    def __init__(self, key: str, company_code: str | None = None):
        self.key = str(key)
        self.company_code = company_code
        scope = f" in company {company_code}" if company_code else ""
        super().__init__(f"{self.entity} not found: {self.key}{scope}")


class ProductNotFoundError(NotFoundError):
    code: str = "PRODUCT_NOT_FOUND"
    entity = "Product"


class CustomerNotFoundError(NotFoundError):
    code: str = "CUSTOMER_NOT_FOUND"
    entity = "Customer"


class SupplierNotFoundError(NotFoundError):
    code: str = "SUPPLIER_NOT_FOUND"
    entity = "Supplier"


class InvoiceNotFoundError(NotFoundError):
    code: str = "INVOICE_NOT_FOUND"
    entity = "Sales invoice"


class PurchaseInvoiceNotFoundError(NotFoundError):
    code: str = "PURCHASE_INVOICE_NOT_FOUND"
    entity = "Purchase invoice"


class ExpenseHeadNotFoundError(NotFoundError):
    code: str = "EXPENSE_HEAD_NOT_FOUND"
    entity = "Expense head"


class TaxRateNotFoundError(NotFoundError):
    code: str = "TAX_RATE_NOT_FOUND"
    entity = "Tax rate"


class LoanNotFoundError(NotFoundError):
    code: str = "LOAN_NOT_FOUND"
    entity = "Loan"


# Validation


class ValidationFailedError(ErpKernelError):
    """Request is malformed or violates a business precondition."""

    code: str = "VALIDATION_FAILED"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Validation failed for {field}: {reason}")


class PartyInactiveError(ValidationFailedError):
    """Customer or supplier is deactivated and cannot transact."""

    code: str = "PARTY_INACTIVE"

    def __init__(self, party_code: str):
        self.party_code = party_code
        super().__init__("party_code", f"party {party_code} is inactive")


class ExpenseHeadInactiveError(ValidationFailedError):
    code: str = "EXPENSE_HEAD_INACTIVE"

    def __init__(self, head_code: str):
        self.head_code = head_code
        super().__init__("head_code", f"expense head {head_code} is inactive")


class DuplicateCodeError(ValidationFailedError):
    """A master-data code is already taken within the company."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__("code", f"{entity} {key} already exists")


class InvoiceNotVoidableError(ValidationFailedError):
    """Invoice is already voided or has settlements/returns attached."""

    code: str = "INVOICE_NOT_VOIDABLE"

    def __init__(self, invoice_number: str, reason: str):
        self.invoice_number = invoice_number
        super().__init__("invoice_id", f"{invoice_number}: {reason}")


# Posting


class PostingError(ErpKernelError):
    """Base exception for failures detected while posting a document."""

    code: str = "POSTING_ERROR"


class StockInsufficientError(PostingError):
    """Requested quantity exceeds the product's current stock."""

    code: str = "STOCK_INSUFFICIENT"

    def __init__(self, product_code: str, requested: int, available: int):
        self.product_code = product_code
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_code}: "
            f"requested {requested}, available {available}"
        )


class ReturnExceedsInvoicedError(PostingError):
    """Cumulative returned quantity would exceed the invoiced quantity."""

    code: str = "RETURN_EXCEEDS_INVOICED"

    def __init__(
        self,
        invoice_number: str,
        product_code: str,
        invoiced: int,
        already_returned: int,
        requested: int,
    ):
        self.invoice_number = invoice_number
        self.product_code = product_code
        self.invoiced = invoiced
        self.already_returned = already_returned
        self.requested = requested
        super().__init__(
            f"Return of {requested} x {product_code} on {invoice_number} exceeds "
            f"invoiced {invoiced} (already returned {already_returned})"
        )


class CreditLimitExceededError(PostingError):
    """A PENDING sale would push the customer beyond its credit limit."""

    code: str = "CREDIT_LIMIT_EXCEEDED"

    def __init__(
        self,
        customer_code: str,
        credit_limit: Decimal,
        current_balance: Decimal,
        requested: Decimal,
    ):
        self.customer_code = customer_code
        self.credit_limit = credit_limit
        self.current_balance = current_balance
        self.requested = requested
        super().__init__(
            f"Credit limit {credit_limit} exceeded for {customer_code}: "
            f"balance {current_balance} + {requested}"
        )


class LoanOverRepaymentError(PostingError):
    """A repayment larger than what is still owed on the loan."""

    code: str = "LOAN_OVER_REPAYMENT"

    def __init__(self, loan_number: str, outstanding: Decimal, requested: Decimal):
        self.loan_number = loan_number
        self.outstanding = outstanding
        self.requested = requested
        super().__init__(
            f"Repayment of {requested} on {loan_number} exceeds outstanding {outstanding}"
        )


class InvariantViolationError(PostingError):
    """A ledger invariant did not hold after mutation. Always a bug."""

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Invariant {invariant} violated: {detail}")


# Infrastructure


class ConcurrencyConflictError(ErpKernelError):
    """Serialization failure, deadlock or number collision that survived retry."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, operation: str, attempts: int, detail: str = ""):
        self.operation = operation
        self.attempts = attempts
        self.detail = detail
        super().__init__(
            f"Concurrency conflict in {operation} after {attempts} attempt(s)"
            + (f": {detail}" if detail else "")
        )


class StorageUnavailableError(ErpKernelError):
    """The database could not be reached or the connection dropped."""

    code: str = "STORAGE_UNAVAILABLE"

    def __init__(self, operation: str, detail: str = ""):
        self.operation = operation
        self.detail = detail
        super().__init__(
            f"Storage unavailable during {operation}"
            + (f": {detail}" if detail else "")
        )
