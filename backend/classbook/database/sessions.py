"""Session factory and scoped session helpers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engines import get_engine

SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def init_session_factory(engine: Optional[Engine] = None) -> None:
    """Bind the session factory (idempotent)."""
    SessionLocal.configure(bind=engine or get_engine())


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Context manager for short-lived DB operations."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# Bind on import so SessionLocal is usable immediately.
init_session_factory()
