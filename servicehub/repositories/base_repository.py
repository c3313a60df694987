# File: servicehub/repositories/base_repository.py

from typing import Generic, TypeVar, Dict, Any, Optional, List, Type
from sqlalchemy.orm import Session
from sqlalchemy import select

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Data access for a single model, using SQLAlchemy 2.0 select() syntax.

    Repositories add and flush but never commit; the owning service decides
    where the transaction boundary lies.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        model (Type[T]): The SQLAlchemy model class this repository manages
    """

    def __init__(self, session: Session, model: Type[T]):
        self.session = session
        self.model = model

    def _columns(self) -> set:
        return {c.name for c in self.model.__table__.columns}

    def get_by_id(self, id: str) -> Optional[T]:
        """
        Retrieve an entity by its primary key ID.

        Args:
            id (str): The primary key ID of the entity

        Returns:
            Optional[T]: The entity if found, None otherwise
        """
        stmt = select(self.model).where(self.model.id == id)
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, data: Dict[str, Any]) -> T:
        """
        Add a new entity and flush it so defaults and constraints apply now.

        Keys that are not columns of the model are ignored.

        Raises:
            sqlalchemy.exc.IntegrityError: If a constraint is violated on flush
        """
        columns = self._columns()
        entity = self.model(**{k: v for k, v in data.items() if k in columns})
        self.session.add(entity)
        self.session.flush()
        return entity

    def create_many(self, rows: List[Dict[str, Any]]) -> List[T]:
        """
        Add several entities with a single flush.

        Args:
            rows: Field values for each entity

        Returns:
            The created entities, in input order
        """
        columns = self._columns()
        entities = [self.model(**{k: v for k, v in row.items() if k in columns}) for row in rows]
        self.session.add_all(entities)
        self.session.flush()
        return entities
