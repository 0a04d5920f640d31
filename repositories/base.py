"""
Base Repository class with common database operations.
"""

from typing import Type, TypeVar, List, Optional, Dict, Any, Tuple
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import func
import logging

from models import Base

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=Base)

class BaseRepository:
    """Base repository with common CRUD operations."""

    def __init__(self, model: Type[T], session: Session):
        self.model = model
        self.session = session

    def get(self, id: Any) -> Optional[T]:
        """Get a single record by ID."""
        try:
            return self.session.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} with id {id}: {e}")
            raise

    def get_by(self, **kwargs) -> Optional[T]:
        """Get a single record by field values."""
        try:
            return self.session.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} by {kwargs}: {e}")
            raise

    def filter(self, filters: Dict[str, Any], limit: Optional[int] = None) -> List[T]:
        """Filter records by multiple fields; None matches NULL, lists match IN."""
        try:
            query = self.session.query(self.model)

            for field, value in filters.items():
                if hasattr(self.model, field):
                    column = getattr(self.model, field)
                    if value is None:
                        query = query.filter(column.is_(None))
                    elif isinstance(value, list):
                        query = query.filter(column.in_(value))
                    else:
                        query = query.filter(column == value)

            query = query.order_by(self.model.id)
            if limit:
                query = query.limit(limit)

            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Error filtering {self.model.__name__}: {e}")
            raise

    def create(self, **kwargs) -> T:
        """Create a new record."""
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            self.session.flush()  # Flush to get ID without committing
            return instance
        except IntegrityError as e:
            logger.error(f"Integrity error creating {self.model.__name__}: {e}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error creating {self.model.__name__}: {e}")
            raise

    def update(self, instance: T, **kwargs) -> T:
        """Overwrite the given attributes on a loaded record."""
        try:
            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            self.session.flush()
            return instance
        except IntegrityError as e:
            logger.error(f"Integrity error updating {self.model.__name__} {instance.id}: {e}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating {self.model.__name__} {instance.id}: {e}")
            raise

    def get_or_create(self, defaults: Optional[Dict[str, Any]] = None, **lookup) -> Tuple[T, bool]:
        """Insert a row if absent, else return the existing one.

        The insert runs inside a SAVEPOINT. When a concurrent writer wins the
        race the unique constraint fires, the savepoint is rolled back and the
        winning row is read back instead.

        Returns:
            Tuple of (instance, created)
        """
        instance = self.get_by(**lookup)
        if instance is not None:
            return instance, False

        params = dict(lookup)
        params.update(defaults or {})
        try:
            with self.session.begin_nested():
                instance = self.model(**params)
                self.session.add(instance)
                self.session.flush()
            return instance, True
        except IntegrityError:
            logger.info(f"{self.model.__name__} {lookup} inserted concurrently, reading existing row")
            instance = self.get_by(**lookup)
            if instance is None:
                raise
            return instance, False

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count records with optional equality filters."""
        try:
            query = self.session.query(func.count(self.model.id))

            for field, value in (filters or {}).items():
                if hasattr(self.model, field):
                    query = query.filter(getattr(self.model, field) == value)

            return query.scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error counting {self.model.__name__}: {e}")
            raise

    def exists(self, **kwargs) -> bool:
        """Check if a record exists."""
        try:
            return self.session.query(
                self.session.query(self.model).filter_by(**kwargs).exists()
            ).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Error checking existence of {self.model.__name__}: {e}")
            raise
