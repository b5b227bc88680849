"""Database layer - engine, base classes and column types."""

from erp_kernel.db.base import UUID, Base, CompanyScopedBase, TrackedBase, UUIDString
from erp_kernel.db.engine import create_tables, get_engine, get_session_factory
from erp_kernel.db.types import Money, Rate, coerce_money, coerce_quantity, round_money

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_tables",
    "Base",
    "TrackedBase",
    "CompanyScopedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Rate",
    "round_money",
    "coerce_money",
    "coerce_quantity",
]
