"""User-facing notifications."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal, Protocol

NotificationLevel = Literal["success", "info", "warning", "error"]

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.WARNING,
}


@dataclass(frozen=True)
class Notification:
    """A toast-style message shown to the technician."""

    level: NotificationLevel
    message: str
    created_at: datetime


class Notifier(Protocol):
    """Interface for surfacing notifications."""

    def notify(self, level: NotificationLevel, message: str) -> None:
        """Show a notification."""


@dataclass
class NotificationCenter(Notifier):
    """In-memory notification log read by the presentation layer."""

    notifications: list[Notification] = field(default_factory=list)

    def notify(self, level: NotificationLevel, message: str) -> None:
        """Record and log a notification."""
        logger.log(_LOG_LEVELS[level], "%s: %s", level, message)
        self.notifications.append(
            Notification(level=level, message=message, created_at=datetime.now(tz=UTC))
        )

    def drain(self) -> list[Notification]:
        """Return and forget pending notifications."""
        pending, self.notifications = self.notifications, []
        return pending

    def messages(self, level: NotificationLevel | None = None) -> list[str]:
        """Return recorded messages, optionally of one level."""
        return [
            item.message
            for item in self.notifications
            if level is None or item.level == level
        ]
