"""Database layer - engine, base classes and column types."""

from settlement_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from settlement_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from settlement_kernel.db.types import Currency, Hours, Money, round_money, to_decimal

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Hours",
    "Currency",
    "round_money",
    "to_decimal",
]
