# backend/classbook/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug("[CONFIG] Looking for .env at: %s (exists=%s)", env_path, env_path.exists())
    load_dotenv(env_path)


ISOLATION_LEVELS = ("READ COMMITTED", "REPEATABLE READ", "SERIALIZABLE")


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "environment"),
    )

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///./classbook.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
        description="SQLAlchemy URL of the reservation database",
    )
    db_isolation_level: str = Field(
        default="READ COMMITTED",
        description="Transaction isolation level for PostgreSQL connections",
    )
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=5, ge=0)
    db_pool_timeout: int = Field(default=5, ge=1, description="Seconds to wait for a pooled connection")
    db_pool_recycle: int = Field(default=1800, ge=1)
    db_statement_timeout_ms: int = Field(default=15000, ge=0)
    sqlite_busy_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Seconds a SQLite writer waits for the database write lock",
    )

    # Observability
    log_level: str = "INFO"
    slow_operation_threshold_s: float = Field(default=1.0, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("db_isolation_level", mode="before")
    @classmethod
    def _normalize_isolation_level(cls, value: object) -> str:
        normalized = " ".join(str(value or "").replace("_", " ").upper().split())
        if normalized not in ISOLATION_LEVELS:
            raise ValueError(
                f"db_isolation_level must be one of {', '.join(ISOLATION_LEVELS)}, got {value!r}"
            )
        return normalized

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        return str(value or "INFO").strip().upper()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.lower().startswith("sqlite")

    def get_database_url(self) -> str:
        """Get the database URL for the current process."""
        return self.database_url


settings = Settings()
