"""Database layer - engine, base classes, types."""

from inventory_kernel.db.base import Base, TrackedBase, UUIDString
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from inventory_kernel.db.types import (
    MONEY_DECIMAL_PLACES,
    normalize_money,
    normalize_optional_money,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "MONEY_DECIMAL_PLACES",
    "normalize_money",
    "normalize_optional_money",
]
