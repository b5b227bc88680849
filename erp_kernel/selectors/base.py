"""
Module: erp_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors and the
    ``Page`` container returned by paginated listings.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/ (DTOs, status).  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Every query is scoped to the selector's company_code.
    - Identical reads with no intervening writes return identical results
      (every listing has a total order, ending in a unique column).

Failure modes:
    - ValidationFailedError for page < 1.
"""

from __future__ import annotations

import math
from abc import ABC
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from erp_kernel.db.base import Base
from erp_kernel.domain.clock import Clock, SystemClock
from erp_kernel.domain.policy import DEFAULT_POLICY, PostingPolicy
from erp_kernel.exceptions import ValidationFailedError

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing."""

    items: tuple[T, ...]
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  The caller owns the session.
    """

    def __init__(
        self,
        session: Session,
        company_code: str,
        policy: PostingPolicy = DEFAULT_POLICY,
        clock: Clock | None = None,
    ):
        self.session = session
        self.company_code = company_code
        self.policy = policy
        self.clock = clock or SystemClock()

    def _today(self, as_of: date | None = None) -> date:
        return as_of if as_of is not None else self.clock.today()

    def _paginate(
        self,
        stmt: Select,
        convert: Callable[[Any], T],
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[T]:
        """
        Run ``stmt`` (already filtered and ordered) for one page.

        ``page_size`` is clamped to the company policy; None means the
        policy default.
        """
        if page < 1:
            raise ValidationFailedError("page", "page must be >= 1")
        size = self.policy.clamp_page_size(page_size)

        total = self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.session.execute(
            stmt.limit(size).offset((page - 1) * size)
        ).scalars().all()
        return Page(
            items=tuple(convert(row) for row in rows),
            page=page,
            page_size=size,
            total=total,
            total_pages=math.ceil(total / size) if total else 0,
        )
