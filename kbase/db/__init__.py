"""Database utilities and session management."""

from kbase.db.base import (
    Base,
    JSONType,
    String7,
    String20,
    String50,
    String100,
    String255,
    String500,
    String2048,
    TimestampedModel,
    utcnow,
)
from kbase.db.deps import BestEffortStep, DBSession, get_db, get_db_override
from kbase.db.session import (
    check_db_health,
    close_db,
    create_engine,
    create_session_factory,
    init_db,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampedModel",
    "utcnow",
    # Column types
    "JSONType",
    "String7",
    "String20",
    "String50",
    "String100",
    "String255",
    "String500",
    "String2048",
    # Engine / session management
    "create_engine",
    "create_session_factory",
    "init_db",
    "close_db",
    "check_db_health",
    # Dependencies
    "get_db",
    "DBSession",
    "get_db_override",
    "BestEffortStep",
]
