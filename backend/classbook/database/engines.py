"""Database engine factory."""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import QueuePool, StaticPool

from ..core.config import settings

logger = logging.getLogger(__name__)

_ENGINE: Optional[Engine] = None


def _is_memory_sqlite(db_url: str) -> bool:
    url = make_url(db_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def _add_pool_events(engine: Engine, pool_name: str) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(_dbapi_connection: Any, connection_record: Any) -> None:
        connection_record.info["connect_time"] = datetime.now()
        logger.debug("[%s] Database connection established", pool_name)

    @event.listens_for(engine, "checkout")
    def _on_checkout(_dbapi_connection: Any, _connection_record: Any, _proxy: Any) -> None:
        logger.debug("[%s] Connection checked out from pool", pool_name)

    @event.listens_for(engine, "checkin")
    def _on_checkin(_dbapi_connection: Any, _connection_record: Any) -> None:
        logger.debug("[%s] Connection returned to pool", pool_name)


def _configure_sqlite_locking(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two writers both
    read a slot's booked count before either inserts. BEGIN IMMEDIATE makes
    the read-check-write sequence run one transaction at a time.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def _create_sqlite_engine(db_url: str) -> Engine:
    connect_args: dict[str, Any] = {
        "check_same_thread": False,
        "timeout": settings.sqlite_busy_timeout_s,
    }
    if _is_memory_sqlite(db_url):
        engine = create_engine(db_url, poolclass=StaticPool, connect_args=connect_args)
    else:
        engine = create_engine(db_url, connect_args=connect_args)
    _configure_sqlite_locking(engine)
    return engine


def _create_postgres_engine(db_url: str) -> Engine:
    return create_engine(
        db_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        isolation_level=settings.db_isolation_level,
        connect_args={
            "connect_timeout": 5,
            "application_name": "classbook",
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        },
    )


def create_db_engine(db_url: Optional[str] = None) -> Engine:
    """
    Build an engine for the given URL (defaults to settings.database_url).

    PostgreSQL engines run at the configured isolation level; SQLite engines
    serialize writers with BEGIN IMMEDIATE.
    """
    url = db_url or settings.get_database_url()
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        engine = _create_sqlite_engine(url)
    else:
        engine = _create_postgres_engine(url)
    _add_pool_events(engine, backend)
    logger.info("Database engine created for backend=%s", backend)
    return engine


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _ENGINE
    if _ENGINE is None:
        _ENGINE = create_db_engine()
    return _ENGINE


def get_db_pool_status() -> dict[str, int]:
    """Get current database pool statistics."""
    pool = get_engine().pool
    if not isinstance(pool, QueuePool):
        return {"size": 0, "checked_in": 0, "checked_out": 0, "total": 0, "overflow": 0}
    return {
        "size": pool.size(),
        "checked_in": pool.checkedin(),
        "checked_out": pool.checkedout(),
        "total": pool.size() + pool.overflow(),
        "overflow": pool.overflow(),
    }
