"""
Shared CRUD behaviour for the domain managers.
"""

import threading
from datetime import date
from typing import Callable, Generic, Iterable, List, Optional, TypeVar

from ..core.abstract_entity import AbstractEntity
from ..core.enums import NotificationType
from ..core.exceptions import DuplicateEntityError, ResourceNotFoundError
from ..core.interfaces import Manageable
from ..persistence.repositories import BaseRepository
from ..utils.logger import get_logger
from .notification_service import NotificationService

T = TypeVar('T', bound=AbstractEntity)
E = TypeVar('E', bound=AbstractEntity)


def next_sequence_id(entities: Iterable[AbstractEntity], prefix: str, width: int = 3) -> str:
    """Next id of the form ``<prefix><number>`` after the highest one in use."""
    numbers = []
    for entity in entities:
        suffix = entity.id[len(prefix):]
        if entity.id.startswith(prefix) and suffix.isdigit():
            numbers.append(int(suffix))
    return f"{prefix}{max(numbers, default=0) + 1:0{width}d}"


class BaseManager(Manageable[T], Generic[T]):
    """Manageable implementation backed by a single primary repository.

    Subclasses set ``entity_label`` and ``id_prefix`` and add their
    domain operations on top.
    """

    entity_label = "Entity"
    id_prefix = ""

    def __init__(self, repository: BaseRepository[T],
                 notification_service: Optional[NotificationService] = None):
        self._repository = repository
        self._notifications = notification_service
        self._lock = threading.RLock()
        self._logger = get_logger(type(self).__module__)

    @property
    def repository(self) -> BaseRepository[T]:
        return self._repository

    def create(self, entity: T) -> T:
        with self._lock:
            if self._repository.exists(entity.id):
                self._logger.warning("Rejected duplicate %s %s", self.entity_label.lower(), entity.id)
                raise DuplicateEntityError(f"{self.entity_label} {entity.id} already exists")
            self._repository.save(entity)
        self._logger.info("Created %s %s", self.entity_label.lower(), entity.id)
        return entity

    def read(self, entity_id: str) -> Optional[T]:
        return self._repository.find_by_id(entity_id)

    def update(self, entity: T) -> T:
        with self._lock:
            if not self._repository.exists(entity.id):
                raise ResourceNotFoundError(f"{self.entity_label} {entity.id} not found")
            return self._repository.save(entity)

    def delete(self, entity_id: str) -> bool:
        with self._lock:
            if not self._repository.delete(entity_id):
                raise ResourceNotFoundError(f"{self.entity_label} {entity_id} not found")
        self._logger.info("Deleted %s %s", self.entity_label.lower(), entity_id)
        return True

    def get_all(self) -> List[T]:
        return self._repository.find_all()

    def count(self) -> int:
        return self._repository.count()

    def get(self, entity_id: str) -> T:
        """Like ``read`` but raises ResourceNotFoundError for unknown ids."""
        return self._require(self._repository, entity_id, self.entity_label)

    def _require(self, repository: BaseRepository[E], entity_id: str, label: str) -> E:
        entity = repository.find_by_id(entity_id)
        if entity is None:
            raise ResourceNotFoundError(f"{label} {entity_id} not found")
        return entity

    def _next_id(self, repository: Optional[BaseRepository] = None, prefix: Optional[str] = None) -> str:
        repository = repository or self._repository
        return next_sequence_id(repository.find_all(), prefix or self.id_prefix)

    def _modify(self, entity_id: str, action: Callable[[T], object]) -> T:
        """Load an entity, apply ``action`` and persist the result."""
        with self._lock:
            entity = self.get(entity_id)
            action(entity)
            self._repository.save(entity)
            return entity

    def get_alerts(self, today: Optional[date] = None) -> List[str]:
        return []

    def publish_alerts(self, today: Optional[date] = None) -> int:
        """Send the current alerts through the notification service.

        An alert still waiting unread from an earlier call is not sent again.
        Returns the number of alerts sent.
        """
        alerts = self.get_alerts(today)
        if self._notifications is None:
            return len(alerts)
        source = type(self).__name__
        sent = [self._notifications.notify_once(NotificationType.ALERT, alert, source=source) for alert in alerts]
        return sum(1 for notification in sent if notification is not None)
