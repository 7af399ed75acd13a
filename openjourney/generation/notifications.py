"""
User-facing failure notifications.

Credential problems are flagged so the front end can show the API key prompt
instead of a dismissible banner.
"""

import itertools
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional

from openjourney.core.exceptions import FailureKind, OpenjourneyError
from openjourney.core.logging_config import get_logger

logger = get_logger("generation.notifications")

MAX_NOTIFICATIONS = 50


@dataclass(frozen=True)
class Notification:
    id: str
    kind: FailureKind
    message: str
    requires_credentials: bool
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "message": self.message,
            "requiresCredentials": self.requires_credentials,
            "createdAt": self.created_at.isoformat(),
        }


class NotificationCenter:
    """Bounded history of failure notifications, newest last."""

    def __init__(
        self,
        max_items: int = MAX_NOTIFICATIONS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._items: Deque[Notification] = deque(maxlen=max_items)
        self._counter = itertools.count(1)
        self._clock = clock

    def push(self, error: OpenjourneyError, context: str = "Generation") -> Notification:
        notification = Notification(
            id=f"note-{next(self._counter)}",
            kind=error.kind,
            message=f"{context} failed: {error.message}",
            requires_credentials=error.requires_credentials,
            created_at=self._clock(),
        )
        self._items.append(notification)
        logger.debug(f"Notification {notification.id}: {notification.message}")
        return notification

    def list(self) -> List[Notification]:
        return list(self._items)

    def dismiss(self, notification_id: str) -> Optional[Notification]:
        for notification in self._items:
            if notification.id == notification_id:
                self._items.remove(notification)
                return notification
        return None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
