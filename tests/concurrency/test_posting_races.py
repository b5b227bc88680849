"""
Concurrent postings against the same rows.

Product, customer and counter rows are locked FOR UPDATE (BEGIN IMMEDIATE on
SQLite), so concurrent sales can neither oversell nor share a number.

Skip with: pytest -m "not slow_locks"
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from erp_kernel.exceptions import CreditLimitExceededError, StockInsufficientError

pytestmark = pytest.mark.slow_locks


def _race(fn, workers):
    """Run ``fn`` in ``workers`` threads released together; collect results and errors."""
    barrier = threading.Barrier(workers)

    def attempt(_):
        barrier.wait()
        try:
            return fn(), None
        except (StockInsufficientError, CreditLimitExceededError) as exc:
            return None, exc

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = list(pool.map(attempt, range(workers)))
    results = [r for r, e in outcomes if r is not None]
    errors = [e for r, e in outcomes if e is not None]
    return results, errors


class TestStockRace:

    def test_no_oversell(self, sell, reader):
        # P002 has 10 units; 15 buyers want one each
        results, errors = _race(lambda: sell(("P002", 1)), workers=15)

        assert len(results) == 10
        assert len(errors) == 5
        assert all(isinstance(e, StockInsufficientError) for e in errors)
        with reader() as q:
            assert q.master_data.get_product("P002").current_stock == 0
            assert q.documents.list_sales_invoices().total == 10

    def test_numbers_unique_and_gap_free(self, sell):
        results, _ = _race(lambda: sell(("P003", 1)), workers=8)
        numbers = sorted(invoice.number for invoice in results)
        assert numbers == [f"INV-{n:06d}" for n in range(1, 9)]


class TestCreditLimitRace:

    def test_limit_holds_under_contention(self, sell, reader):
        # C002 limit 1000.00; each sale is 210.00
        results, errors = _race(lambda: sell(("P001", 2), customer="C002"), workers=6)

        assert len(results) == 4
        assert all(isinstance(e, CreditLimitExceededError) for e in errors)
        with reader() as q:
            balance = q.master_data.get_customer("C002").outstanding_balance
        assert balance == Decimal("840.00")
