"""User-facing notifications emitted by the sync engine."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class NotificationLevel(str, Enum):
    """Severity of a notification."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationKind(str, Enum):
    """What a notification is about."""

    ITEM_ADDED = "item_added"
    ITEM_REMOVED = "item_removed"
    MANUAL_ACTION = "manual_action"
    SYNC_SUMMARY = "sync_summary"
    IN_SYNC = "in_sync"
    SYNC_FAILED = "sync_failed"
    DATA_LOSS = "data_loss"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class Notification:
    """A single message for the user."""

    kind: NotificationKind
    level: NotificationLevel
    message: str
    playlist_id: Optional[str] = None
    item_key: Optional[str] = None


Notifier = Callable[[Notification], None]


_LOG_LEVELS = {
    NotificationLevel.INFO: logging.INFO,
    NotificationLevel.WARNING: logging.WARNING,
    NotificationLevel.ERROR: logging.ERROR,
}


def log_notifier(notification: Notification) -> None:
    """Default notifier that writes notifications to the log."""
    logger.log(
        _LOG_LEVELS[notification.level],
        "[%s] %s",
        notification.kind.value,
        notification.message,
    )


class NotificationCollector:
    """Notifier that keeps every notification, then forwards it.

    Useful for summarizing a CLI run and in tests.
    """

    def __init__(self, forward: Optional[Notifier] = None) -> None:
        """Initialize collector.

        Args:
            forward: Optional notifier to pass each notification on to
        """
        self.notifications: List[Notification] = []
        self.forward = forward

    def __call__(self, notification: Notification) -> None:
        """Record and forward a notification."""
        self.notifications.append(notification)
        if self.forward is not None:
            self.forward(notification)

    def of_kind(self, kind: NotificationKind) -> List[Notification]:
        """Get the notifications of one kind."""
        return [n for n in self.notifications if n.kind == kind]

    def clear(self) -> None:
        """Forget all recorded notifications."""
        self.notifications.clear()
