# backend/classbook/services/base.py
"""
Base Service Pattern for the classbook platform

Every service gets:
- a session-scoped transaction context that commits or rolls back
- a class-named logger and structured operation logging
- per-operation timing with slow-call warnings
"""

from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterator, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import RepositoryException, ServiceException

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class OperationStats:
    """Running timings of one measured operation."""

    count: int = 0
    success_count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    def add(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if success:
            self.success_count += 1

    @property
    def failure_count(self) -> int:
        return self.count - self.success_count

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "total_time": self.total_time,
            "success_rate": self.success_count / self.count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


class BaseService:
    """
    Base class for all service layer components.

    Services receive their Session from the caller and hold nothing else
    between calls apart from in-process operation timings.
    """

    # Timings keyed by service class name, then operation name
    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}
    _metrics_lock = threading.Lock()

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run the block as one unit of work on self.db.

        Usage:
            with self.transaction():
                self.repository.create(...)
                # commit happens on exit

        Storage failures roll back and surface as ServiceException. Any
        other exception (domain errors included) rolls back and propagates
        unchanged.
        """
        try:
            yield self.db
            self.db.commit()
            self.logger.debug("Transaction committed successfully")
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator that times a service method.

        Usage:
            @BaseService.measure_operation("book")
            def book(self, principal, time_slot_id):
                ...

        Calls slower than settings.slow_operation_threshold_s log a warning.
        """

        def decorator(func: F) -> F:
            @wraps(func)
            def wrapper(self, *args, **kwargs):
                start_time = time.perf_counter()
                success = False
                try:
                    result = func(self, *args, **kwargs)
                    success = True
                    return result
                finally:
                    elapsed = time.perf_counter() - start_time
                    if hasattr(self, "_record_metric"):
                        self._record_metric(operation_name, elapsed, success)
                    if elapsed > settings.slow_operation_threshold_s and hasattr(self, "logger"):
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )

            wrapper._operation_name = operation_name  # type: ignore[attr-defined]
            wrapper._is_measured = True  # type: ignore[attr-defined]
            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with its context attached as record extras."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        with BaseService._metrics_lock:
            metrics = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
            metrics.setdefault(operation, OperationStats()).add(elapsed, success)

    def get_metrics(self) -> Dict[str, Any]:
        """Timing summary per measured operation of this service class."""
        with BaseService._metrics_lock:
            metrics = BaseService._class_metrics.get(self.__class__.__name__, {})
            return {name: stats.summary() for name, stats in metrics.items() if stats.count}

    def reset_metrics(self) -> None:
        """Reset all metrics for this service."""
        class_name = self.__class__.__name__
        with BaseService._metrics_lock:
            BaseService._class_metrics.pop(class_name, None)
        self.logger.info(f"Metrics reset for {class_name}")
