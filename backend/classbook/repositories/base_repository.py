# backend/classbook/repositories/base_repository.py
"""
Generic data access shared by the classbook repositories.

Repositories flush but never commit: the calling service owns the
transaction boundary. SQLAlchemy failures are logged and re-raised as
RepositoryException with the original error chained.
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException
from ..database.session_utils import get_dialect_name

ModelT = TypeVar("ModelT")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelT]):
    """
    CRUD helpers for one mapped model.

    Subclasses pass their model to __init__ and override
    _apply_eager_loading to choose which relationships detail reads load.
    """

    def __init__(self, db: Session, model: Type[ModelT]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[ModelT]:
        query = self.db.query(self.model).filter(self.model.id == id)
        if load_relationships:
            query = self._apply_eager_loading(query)
        return self._run(query.first, f"load {self.model.__name__} {id}")

    def create(self, **kwargs: Any) -> ModelT:
        """
        Add and flush a new row so its id and defaults are populated.

        Raises:
            RepositoryException: on any database error; for constraint
                violations the IntegrityError is the __cause__
        """
        entity = self.model(**kwargs)
        try:
            self.db.add(entity)
            self.db.flush()
        except IntegrityError as exc:
            self.logger.warning("Constraint rejected new %s: %s", self.model.__name__, exc.orig)
            self.db.rollback()
            raise RepositoryException(f"Integrity constraint violated: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.logger.error("Failed to create %s: %s", self.model.__name__, exc)
            self.db.rollback()
            raise RepositoryException(f"Failed to create {self.model.__name__}: {exc}") from exc
        return entity

    def count(self, **filters: Any) -> int:
        query = self.db.query(self.model).filter_by(**filters)
        return self._run(query.count, f"count {self.model.__name__}")

    def find_one_by(self, **filters: Any) -> Optional[ModelT]:
        """First row whose columns equal the given values, or None."""
        query = self.db.query(self.model).filter_by(**filters)
        return self._run(query.first, f"find {self.model.__name__}")

    # Helpers for subclasses

    def _apply_eager_loading(self, query: Query) -> Query:
        return query

    def _build_query(self) -> Query:
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[Any]:
        return self._run(query.all, f"query {self.model.__name__}")

    def _execute_scalar(self, query: Query) -> Any:
        return self._run(query.scalar, f"scalar query on {self.model.__name__}")

    def _run(self, fn, action: str) -> Any:
        try:
            return fn()
        except SQLAlchemyError as exc:
            self.logger.error("Failed to %s: %s", action, exc)
            raise RepositoryException(f"Failed to {action}: {exc}") from exc
