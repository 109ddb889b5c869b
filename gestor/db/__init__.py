"""Database module exports."""

from gestor.db.models import Base, Document
from gestor.db.session import (
    check_db_health,
    close_db,
    get_engine,
    get_session_factory,
    init_db,
)
from gestor.db.store import DocumentStore, user_collection, utc_timestamp

__all__ = [
    # Models
    "Base",
    "Document",
    # Session management
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    "check_db_health",
    # Document store
    "DocumentStore",
    "user_collection",
    "utc_timestamp",
]
