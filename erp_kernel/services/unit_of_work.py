"""
UnitOfWork -- one database transaction per posting operation, with retry.

Responsibility:
    Opens a session, runs a posting callable inside it, and commits.  On any
    error the whole transaction is rolled back, so no partial state is ever
    visible.  Database-level concurrency failures (serialization failure,
    deadlock, lock timeout, unique-number collision) are retried up to
    ``max_retries`` times with a fresh session and then surfaced as
    ``ConcurrencyConflictError``.  Connection failures become
    ``StorageUnavailableError`` and are not retried.

Architecture position:
    Kernel > Services.  Used by PostingEngine; the only place in the kernel
    that calls ``session.commit()``.

Invariants enforced:
    - All-or-nothing: every posting commits completely or not at all.
    - Retry limit: at most ``1 + max_retries`` attempts per operation.

Failure modes:
    - ConcurrencyConflictError after the retry budget is spent.
    - StorageUnavailableError on connection/driver failures.
    - ErpKernelError subclasses raised by services propagate unchanged
      (after rollback) and are never retried.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from erp_kernel.exceptions import ConcurrencyConflictError, StorageUnavailableError
from erp_kernel.logging_config import get_logger

logger = get_logger("services.unit_of_work")

T = TypeVar("T")

# PostgreSQL SQLSTATEs that mean "try again"
_RETRYABLE_PGCODES = frozenset({
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
    "23505",  # unique_violation (document number collision)
})

_RETRYABLE_MESSAGES = (
    "deadlock",
    "database is locked",
    "could not serialize",
    "unique constraint",
)


def is_concurrency_conflict(exc: DBAPIError) -> bool:
    """Classify a driver error as a retryable concurrency conflict."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _RETRYABLE_PGCODES:
        return True
    message = str(exc.orig).lower()
    if isinstance(exc, IntegrityError):
        return "unique" in message or "duplicate key" in message
    return any(marker in message for marker in _RETRYABLE_MESSAGES)


def is_storage_failure(exc: DBAPIError) -> bool:
    return exc.connection_invalidated or isinstance(exc, (OperationalError, InterfaceError))


class UnitOfWork:
    """
    Runs a callable in exactly one committed transaction.

    Contract:
        ``run(operation, fn)`` calls ``fn(session)`` and commits.  ``fn`` must
        only flush.  Results returned by ``fn`` should be DTOs built before
        commit.

    Guarantees:
        - Rollback on every exception, then close.
        - Retryable conflicts are retried with a brand new session; earlier
          attempts leave no trace.

    Non-goals:
        - Does NOT retry business rejections (stock, credit, validation).
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | Callable[[], Session],
        max_retries: int = 1,
        retry_backoff_seconds: float = 0.05,
    ):
        self._session_factory = session_factory
        self.max_retries = max_retries
        self.retry_backoff_seconds = retry_backoff_seconds

    def run(self, operation: str, fn: Callable[[Session], T]) -> T:
        attempts = 0
        while True:
            attempts += 1
            session = self._session_factory()
            start = time.monotonic()
            try:
                result = fn(session)
                session.commit()
                logger.info(
                    "transaction_committed",
                    extra={
                        "operation": operation,
                        "attempt": attempts,
                        "duration_ms": round((time.monotonic() - start) * 1000, 2),
                    },
                )
                return result
            except DBAPIError as exc:
                session.rollback()
                if is_concurrency_conflict(exc):
                    if attempts <= self.max_retries:
                        logger.warning(
                            "concurrency_conflict_retry",
                            extra={
                                "operation": operation,
                                "attempt": attempts,
                                "max_retries": self.max_retries,
                                "detail": str(exc.orig),
                            },
                        )
                        time.sleep(self.retry_backoff_seconds * attempts)
                        continue
                    logger.error(
                        "concurrency_conflict_exhausted",
                        extra={"operation": operation, "attempts": attempts},
                    )
                    raise ConcurrencyConflictError(operation, attempts, str(exc.orig)) from exc
                if is_storage_failure(exc):
                    logger.error(
                        "storage_unavailable",
                        extra={"operation": operation, "detail": str(exc.orig)},
                    )
                    raise StorageUnavailableError(operation, str(exc.orig)) from exc
                raise
            except Exception:
                session.rollback()
                logger.info(
                    "transaction_rolled_back",
                    extra={"operation": operation, "attempt": attempts},
                    exc_info=True,
                )
                raise
            finally:
                session.close()
