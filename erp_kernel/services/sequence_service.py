"""
SequenceService -- document-number allocation via locked counter rows.

Responsibility:
    Provides strictly increasing counter values per company and document
    type, and formats them into document numbers (INV-000001, RTN-000001,
    ...).  Uses a dedicated counter table with row-level locking
    (``SELECT ... FOR UPDATE``) so concurrent postings never receive the same
    number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Called by every
    posting service that issues a numbered document.

Invariants enforced:
    DOCUMENT_NUMBER_UNIQUENESS -- the locked counter row is the sole source
        of the next value.  Aggregate MAX()+1 and timestamp numbers are
        never used.
    Transactional -- an increment is only visible once the caller's
        transaction commits.  A rollback returns the value.

Failure modes:
    - IntegrityError: concurrent creation of a brand-new counter row
      (handled via savepoint rollback and retry).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from erp_kernel.domain.policy import DocumentType, PostingPolicy
from erp_kernel.logging_config import LogContext, get_logger
from erp_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


def sequence_name(company_code: str, document_type: DocumentType) -> str:
    """Counter name for a company's document type, e.g. 'ACME:SALES_INVOICE'."""
    return f"{company_code}:{document_type.value}"


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly increasing values per sequence name via a locked row.
        - Under normal operation no value is skipped; on rollback the value
          is returned.

    Non-goals:
        - Does NOT call ``session.commit()``.

    Usage:
        number = SequenceService(session).next_document_number(
            "ACME", DocumentType.SALES_INVOICE, policy
        )
    """

    def __init__(self, session: Session):
        self._session = session

    def _lock_counter(self, name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0, strictly greater than any value
              previously returned for ``name``.
            - The counter row is locked until the transaction completes.
        """
        counter = self._lock_counter(name)

        if counter is None:
            # First use of this sequence.  Another transaction may create it
            # at the same moment; the savepoint keeps our other work intact.
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug("sequence_allocated", extra={"sequence_name": name, "value": 1})
                return 1
            except IntegrityError:
                logger.debug("sequence_counter_race_retry", extra={"sequence_name": name})
                savepoint.rollback()
                counter = self._lock_counter(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": name, "value": counter.current_value},
        )
        return counter.current_value

    def next_document_number(
        self,
        company_code: str,
        document_type: DocumentType,
        policy: PostingPolicy,
    ) -> str:
        value = self.next_value(sequence_name(company_code, document_type))
        number = policy.format_document_number(document_type, value)
        LogContext.set(document_number=number)
        return number

    def current_value(self, name: str) -> int | None:
        """Current value of a sequence without incrementing, or None."""
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def reset(self, name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: tests and data migration only.
        """
        counter = self._lock_counter(name)
        if counter is None:
            self._session.add(SequenceCounter(name=name, current_value=value))
        else:
            counter.current_value = value
        self._session.flush()
