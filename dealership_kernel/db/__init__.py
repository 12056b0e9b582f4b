"""Database layer - engine, base classes, types and immutability guards."""

from dealership_kernel.db.base import UUID, Base, SoftDeleteMixin, TrackedBase, UUIDString
from dealership_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from dealership_kernel.db.types import Money, round_money, to_money

__all__ = [
    "Base",
    "Money",
    "SoftDeleteMixin",
    "TrackedBase",
    "UUID",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "round_money",
    "session_scope",
    "to_money",
]
