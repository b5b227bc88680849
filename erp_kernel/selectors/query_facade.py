"""
Module: erp_kernel.selectors.query_facade
Responsibility: Opens a read-only session for one company and hands out the
    selectors bound to it.  This is the read-side counterpart of
    PostingEngine for HTTP/CLI and export layers.
Architecture position: Kernel > Selectors.

Usage:
    facade = QueryFacade(get_session_factory(), policy_provider=provider)
    with facade.open("ACME") as q:
        page = q.documents.list_sales_invoices(page=2)
        summary = q.reports.sales_summary(date_from, date_to)
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.policy import DEFAULT_POLICY, PostingPolicy
from erp_kernel.selectors.cash_book_selector import CashBookSelector
from erp_kernel.selectors.document_selector import DocumentSelector
from erp_kernel.selectors.master_data_selector import MasterDataSelector
from erp_kernel.selectors.report_selector import ReportSelector


class CompanyReader:
    """Selectors sharing one session and one company."""

    def __init__(self, session: Session, company_code: str, policy: PostingPolicy, clock: Clock):
        args = (session, company_code, policy, clock)
        self.company_code = company_code
        self.master_data = MasterDataSelector(*args)
        self.documents = DocumentSelector(*args)
        self.cash_book = CashBookSelector(*args)
        self.reports = ReportSelector(*args)


class QueryFacade:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        policy_provider: Callable[[str], PostingPolicy] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._policy_provider = policy_provider
        self._clock = clock or SystemClock()

    @contextmanager
    def open(self, company_code: str) -> Generator[CompanyReader, None, None]:
        """Yield a CompanyReader; the session is rolled back and closed on exit."""
        policy = (
            self._policy_provider(company_code) if self._policy_provider else DEFAULT_POLICY
        )
        session = self._session_factory()
        try:
            yield CompanyReader(session, company_code, policy, self._clock)
        finally:
            session.rollback()
            session.close()
