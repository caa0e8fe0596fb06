"""Toast-style notification side channel.

The scheduler reports precondition failures and per-node failures here
instead of returning them; whoever drives the UI decides how to show them.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    level: NotificationLevel
    message: str
    node_id: Optional[str] = None
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


@runtime_checkable
class Notifier(Protocol):
    def notify(self, level: NotificationLevel, message: str, node_id: Optional[str] = None) -> None: ...


class LoggingNotifier:
    """Default notifier: notifications only go to the log."""

    _LEVELS = {
        NotificationLevel.INFO: logging.INFO,
        NotificationLevel.WARNING: logging.WARNING,
        NotificationLevel.ERROR: logging.ERROR,
    }

    def notify(self, level: NotificationLevel, message: str, node_id: Optional[str] = None) -> None:
        prefix = f"[node {node_id}] " if node_id else ""
        logger.log(self._LEVELS[level], f"{prefix}{message}")


class CollectingNotifier(LoggingNotifier):
    """Logs and also keeps every notification, for callers that return them."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, level: NotificationLevel, message: str, node_id: Optional[str] = None) -> None:
        super().notify(level, message, node_id)
        self.notifications.append(
            Notification(level=level, message=message, node_id=node_id)
        )

    def drain(self) -> list[Notification]:
        """Return and forget everything collected so far."""
        drained, self.notifications = self.notifications, []
        return drained

    def messages(self, level: Optional[NotificationLevel] = None) -> list[str]:
        return [
            n.message for n in self.notifications
            if level is None or n.level == level
        ]
