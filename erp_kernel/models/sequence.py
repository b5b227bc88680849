"""
Module: erp_kernel.models.sequence
Responsibility: Named counter rows backing document-number allocation.
Architecture position: Kernel > Models.  Used only by SequenceService.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from erp_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is one named sequence ("<company>:<document type>") with its
    last issued value.  Row-level locking keeps allocation monotonic.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
