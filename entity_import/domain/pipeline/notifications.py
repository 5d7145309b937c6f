"""
Transient, auto-dismissing notifications raised by the import session.
"""
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Literal, Optional

from entity_import.core.config import settings

logger = logging.getLogger(__name__)

NotificationStatus = Literal["info", "success", "warning", "error"]

_LOG_LEVELS = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    status: NotificationStatus
    title: str
    description: str
    duration_ms: int
    created_at: float = field(default_factory=time.monotonic)

    def expired(self, now: Optional[float] = None) -> bool:
        current = time.monotonic() if now is None else now
        return (current - self.created_at) * 1000 >= self.duration_ms


class NotificationCenter:
    """Collects notifications for the host to display; each dismisses itself after its duration."""

    def __init__(self, clock: Callable[[], float] = time.monotonic, history_size: Optional[int] = None):
        self._clock = clock
        # Oldest entries fall off once the history is full.
        self._history: Deque[Notification] = deque(maxlen=history_size or settings.notification_history_size)

    def notify(
        self,
        status: NotificationStatus,
        title: str,
        description: str,
        duration_ms: Optional[int] = None,
    ) -> Notification:
        if duration_ms is None:
            duration_ms = (
                settings.warning_notification_ms if status == "warning" else settings.error_notification_ms
            )
        item = Notification(status, title, description, duration_ms, created_at=self._clock())
        self._history.append(item)
        logger.log(_LOG_LEVELS[status], "%s: %s", title, description)
        return item

    def warning(self, title: str, description: str) -> Notification:
        return self.notify("warning", title, description)

    def error(self, title: str, description: str) -> Notification:
        return self.notify("error", title, description)

    def active(self) -> List[Notification]:
        """Return notifications that have not yet dismissed themselves."""
        now = self._clock()
        return [item for item in self._history if not item.expired(now)]

    @property
    def history(self) -> List[Notification]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
