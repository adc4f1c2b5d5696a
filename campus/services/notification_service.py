"""
Notification service with publish/subscribe delivery.
"""

import itertools
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..core.enums import NotificationType
from ..core.exceptions import ResourceNotFoundError, ValidationError
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class Notification:
    """A message published to campus users."""
    notification_id: str
    notification_type: NotificationType
    message: str
    recipient: Optional[str] = None
    source: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    is_read: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.notification_id,
            "type": self.notification_type.value,
            "message": self.message,
            "recipient": self.recipient,
            "source": self.source,
            "created_at": self.created_at.isoformat(),
            "is_read": self.is_read,
        }


Observer = Callable[[Notification], None]


class NotificationService:
    """Stores notifications and fans them out to subscribed observers.

    At most ``max_history`` notifications are kept. Once full, the oldest
    read notification is dropped first, then the oldest unread one.
    """

    def __init__(self, max_history: int = 500):
        if max_history <= 0:
            raise ValidationError("Notification history size must be positive")
        self._max_history = max_history
        self._notifications: List[Notification] = []
        self._observers: Dict[str, Observer] = {}
        self._counter = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def max_history(self) -> int:
        return self._max_history

    def subscribe(self, subscriber_id: str, observer: Observer) -> None:
        with self._lock:
            self._observers[subscriber_id] = observer
        logger.debug("Subscriber %s registered", subscriber_id)

    def unsubscribe(self, subscriber_id: str) -> bool:
        with self._lock:
            return self._observers.pop(subscriber_id, None) is not None

    def notify(self, notification_type: NotificationType, message: str,
               recipient: Optional[str] = None, source: Optional[str] = None) -> Notification:
        """Record a notification and deliver it to every observer.

        An observer that raises is logged and skipped so the remaining
        observers still receive the notification.
        """
        with self._lock:
            notification = Notification(
                notification_id=f"N{next(self._counter):04d}",
                notification_type=notification_type,
                message=message,
                recipient=recipient,
                source=source,
            )
            self._notifications.append(notification)
            self._trim()
            observers = list(self._observers.items())

        for subscriber_id, observer in observers:
            try:
                observer(notification)
            except Exception:
                logger.exception("Observer %s failed to handle %s", subscriber_id, notification.notification_id)
        return notification

    def notify_once(self, notification_type: NotificationType, message: str,
                    recipient: Optional[str] = None, source: Optional[str] = None) -> Optional[Notification]:
        """Like ``notify``, but returns None while an identical unread notification is held."""
        with self._lock:
            for existing in self._notifications:
                if (not existing.is_read and existing.notification_type == notification_type
                        and existing.message == message and existing.recipient == recipient
                        and existing.source == source):
                    return None
            return self.notify(notification_type, message, recipient, source)

    def _trim(self) -> None:
        while len(self._notifications) > self._max_history:
            oldest_read = next((n for n in self._notifications if n.is_read), None)
            self._notifications.remove(oldest_read or self._notifications[0])

    def get_notifications(self, recipient: Optional[str] = None) -> List[Notification]:
        with self._lock:
            if recipient is None:
                return list(self._notifications)
            return [n for n in self._notifications if n.recipient in (recipient, None)]

    def get_unread(self, recipient: Optional[str] = None) -> List[Notification]:
        return [n for n in self.get_notifications(recipient) if not n.is_read]

    def mark_read(self, notification_id: str) -> Notification:
        with self._lock:
            for notification in self._notifications:
                if notification.notification_id == notification_id:
                    notification.is_read = True
                    return notification
        raise ResourceNotFoundError(f"Notification {notification_id} not found")

    def mark_all_read(self, recipient: Optional[str] = None) -> int:
        unread = self.get_unread(recipient)
        for notification in unread:
            notification.is_read = True
        return len(unread)

    def clear(self) -> None:
        with self._lock:
            self._notifications.clear()

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)
