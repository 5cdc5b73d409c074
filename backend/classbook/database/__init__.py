"""
Database engine, session factory, and metadata shared across the application.
"""

from sqlalchemy.orm import DeclarativeMeta, declarative_base

Base: DeclarativeMeta = declarative_base()

from .engines import create_db_engine, get_db_pool_status, get_engine  # noqa: E402
from .session_utils import get_dialect_name  # noqa: E402
from .sessions import SessionLocal, get_db, get_db_session, init_session_factory  # noqa: E402

__all__ = [
    "Base",
    "SessionLocal",
    "create_db_engine",
    "get_db",
    "get_db_pool_status",
    "get_db_session",
    "get_dialect_name",
    "get_engine",
    "init_session_factory",
]
