# backend/suite/repositories/base_repository.py
"""
Base repository for the Suite backend.

Repositories read and mutate ORM objects and flush, but never commit: the
calling service decides the transaction boundary. SQLAlchemy failures are
raised as ``RepositoryException``.
"""

import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """Data access for one mapped model class."""

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def get_by_id(self, id: str, load_relationships: bool = True) -> Optional[T]:
        try:
            query = self.db.query(self.model).filter(self.model.id == id)  # type: ignore[attr-defined]
            if load_relationships:
                query = self._apply_eager_loading(query)
            return query.first()
        except SQLAlchemyError as e:
            self.logger.error(f"Could not load {self.model.__name__} {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def flush(self) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            self.logger.error(f"Flush failed for {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to save {self.model.__name__}: {str(e)}")

    def _apply_eager_loading(self, query: Query) -> Query:
        """Subclasses add the relationship loads their callers need."""
        return query
