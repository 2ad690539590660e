"""Notification channel for transient user-facing task messages."""

import logging
from collections import deque
from collections.abc import Callable

from src.models.service_models import Notification, NotificationVariant


logger = logging.getLogger(__name__)

NotifyCallback = Callable[[Notification], None]


def success(title: str, description: str) -> Notification:
    """Build a normal notification."""
    return Notification(title=title, description=description, variant=NotificationVariant.NORMAL)


def failure(title: str, description: str) -> Notification:
    """Build a destructive notification."""
    return Notification(title=title, description=description, variant=NotificationVariant.DESTRUCTIVE)


def log_notification(notification: Notification) -> None:
    """Default channel: write the notification to the log."""
    level = logging.WARNING if notification.variant == NotificationVariant.DESTRUCTIVE else logging.INFO
    logger.log(
        level,
        "notification",
        extra={"title": notification.title, "description": notification.description},
    )


class NotificationQueue:
    """Collects notifications until a caller drains them.

    Used by the HTTP layer to hand pending notifications back with the next response.
    """

    def __init__(self, maxlen: int = 50) -> None:
        self._pending: deque[Notification] = deque(maxlen=maxlen)

    def __call__(self, notification: Notification) -> None:
        log_notification(notification)
        self._pending.append(notification)

    def __len__(self) -> int:
        return len(self._pending)

    def drain(self) -> list[Notification]:
        """Return and forget every pending notification, oldest first."""
        drained = list(self._pending)
        self._pending.clear()
        return drained
