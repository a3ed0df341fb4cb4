"""Database connection and session management."""

from users_api.database.connection import (
    check_connection,
    close_engine,
    create_engine,
    get_engine,
)
from users_api.database.models import Base, User
from users_api.database.session import (
    close_db,
    get_session_context,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "User",
    # Connection
    "get_engine",
    "create_engine",
    "close_engine",
    "check_connection",
    # Session
    "get_session_context",
    "get_session_factory",
    "init_db",
    "close_db",
]
