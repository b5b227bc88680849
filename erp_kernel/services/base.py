"""
BaseService -- abstract base for all posting services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    service in the kernel.  Services receive a SQLAlchemy ``Session`` plus a
    ``PostingContext`` (company, actor, policy, clock) and persist with
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell.  The UnitOfWork (driven by the
    PostingEngine) owns commit/rollback, so a multi-ledger posting is one
    atomic transaction.

Failure modes:
    - A subclass that commits on its own breaks the all-or-nothing guarantee
      of multi-step postings.
"""

from __future__ import annotations

from abc import ABC
from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from erp_kernel.db.base import Base
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.policy import DEFAULT_POLICY, PostingPolicy

ModelType = TypeVar("ModelType", bound=Base)


@dataclass(frozen=True)
class PostingContext:
    """Who is posting, for which company, under which policy."""

    company_code: str
    actor_id: UUID
    policy: PostingPolicy = DEFAULT_POLICY
    clock: Clock = field(default_factory=SystemClock)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.
        - Every row the service creates is stamped with the context's
          company_code and actor_id.

    Non-goals:
        - Does NOT provide read-only listings; those live in selectors/.
    """

    def __init__(self, session: Session, context: PostingContext):
        self.session = session
        self.context = context

    @property
    def company_code(self) -> str:
        return self.context.company_code

    @property
    def actor_id(self) -> UUID:
        return self.context.actor_id

    @property
    def policy(self) -> PostingPolicy:
        return self.context.policy

    def _stamp(self, row: Base) -> None:
        """Record the acting user on an updated row."""
        row.updated_by_id = self.actor_id
