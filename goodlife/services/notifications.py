"""
User-visible notifications.

The engine never shows UI itself; it publishes non-blocking notifications that
a front end renders as toasts. History is kept so tests and CLIs can inspect it.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List, Optional
import logging

from ..domain.models import Domain, now_utc

logger = logging.getLogger(__name__)


class NotificationLevel(Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    title: str
    message: str
    domain: Optional[Domain] = None
    created_at: datetime = field(default_factory=now_utc)


Listener = Callable[[Notification], None]


class NotificationCenter:
    """Fan-out of notifications to subscribed listeners."""

    def __init__(self, history_size: int = 100):
        self._listeners: List[Listener] = []
        self._history: Deque[Notification] = deque(maxlen=history_size)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    def publish(self, notification: Notification) -> None:
        self._history.append(notification)
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                logger.error(f"Notification listener failed: {e}")

    def success(self, message: str, domain: Optional[Domain] = None) -> None:
        self.publish(Notification(NotificationLevel.SUCCESS, "Success", message, domain))

    def warning(self, message: str, domain: Optional[Domain] = None) -> None:
        self.publish(Notification(NotificationLevel.WARNING, "Warning", message, domain))

    def error(self, message: str, domain: Optional[Domain] = None) -> None:
        self.publish(Notification(NotificationLevel.ERROR, "Error", message, domain))
