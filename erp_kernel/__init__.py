"""
erp_kernel -- transactional posting engine for a multi-company distribution ERP.

Every operation (sales invoice, return, purchase, receipt, supplier payment,
expense, void) mutates stock, invoice balances, party balances and the cash
book inside a single database transaction.  Selectors provide the read side.
"""

__version__ = "0.1.0"
