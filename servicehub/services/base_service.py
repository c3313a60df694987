# File: servicehub/services/base_service.py

from typing import TypeVar, Generic, Optional, Dict, Any
from contextlib import contextmanager
from sqlalchemy.orm import Session
import logging
from datetime import datetime

from servicehub.core.events import DomainEvent
from servicehub.core.exceptions import ServiceHubException, EntityNotFoundException
from servicehub.repositories.base_repository import BaseRepository

T = TypeVar("T")
logger = logging.getLogger(__name__)


class BaseService(Generic[T]):
    """
    Shared plumbing for ServiceHub services.

    Services own the unit of work: repositories only flush, and the
    service commits or rolls back through transaction(). Audit logging
    and domain event publishing also live here.
    """

    def __init__(
            self,
            session: Session,
            repository: Optional[BaseRepository] = None,
            event_bus=None,
    ):
        """
        Args:
            session: Database session shared by the service and its repositories
            repository: Repository for the service's primary entity
            event_bus: Optional bus that receives domain events after commits
        """
        self.session = session
        self.repository = repository
        self.event_bus = event_bus

    @contextmanager
    def transaction(self):
        """
        Commit the session when the block completes, roll back if it raises.

        The exception is re-raised after rollback, replaced by whatever
        _transform_error maps it to.
        """
        try:
            yield
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            logger.error(f"Rolled back transaction in {self.__class__.__name__}: {e}", exc_info=True)

            transformed = self._transform_error(e)
            if transformed is not None and transformed is not e:
                raise transformed from e
            raise

    def get_entity_or_404(self, id: str) -> T:
        """
        Load the primary entity by ID.

        Raises:
            EntityNotFoundException: If no row has that ID
        """
        entity = self.repository.get_by_id(id)
        if entity is None:
            raise EntityNotFoundException(self.repository.model.__name__, id)
        return entity

    def _publish(self, event: Optional[DomainEvent]) -> None:
        if self.event_bus and event is not None:
            self.event_bus.publish(event)

    def _log_operation(
            self,
            operation: str,
            entity_type: str,
            entity_id: Any = None,
            user_id: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Write an audit line; the structured fields travel in the record's extras."""
        audit = {
            "operation": operation,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user_id": user_id,
            "timestamp": datetime.now().isoformat(),
            "details": details,
        }
        logger.info(f"{operation.upper()} {entity_type} {entity_id or ''}".rstrip(), extra=audit)

    def _transform_error(self, error: Exception) -> Optional[ServiceHubException]:
        """
        Map an exception raised inside transaction() to a domain exception.

        Returns None to re-raise the original unchanged. Subclasses override
        this for errors they can name.
        """
        return None
