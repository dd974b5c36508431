from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import monotonic
from typing import Literal
from uuid import uuid4

from expense_dashboard.core import settings
from expense_dashboard.logger import get_logger

logger = get_logger(__name__)

NotificationLevel = Literal["info", "error"]


@dataclass(frozen=True)
class Notification:
    message: str
    item_id: int | None = None
    level: NotificationLevel = "error"
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "message": self.message,
            "item_id": self.item_id,
            "level": self.level,
            "created_at": self.created_at.isoformat(),
        }


class NotificationCenter:
    """Transient, dismissible messages shown to the user."""

    def __init__(self, ttl: float | None = None) -> None:
        self.ttl = settings.notification_ttl_seconds() if ttl is None else ttl
        self._items: list[Notification] = []

    def push(
        self,
        message: str,
        *,
        item_id: int | None = None,
        level: NotificationLevel = "error",
    ) -> Notification:
        notification = Notification(
            message=message,
            item_id=item_id,
            level=level,
            expires_at=monotonic() + self.ttl,
        )
        self._items.append(notification)
        logger.info("[NOTIFY] %s", message)
        return notification

    def active(self) -> list[Notification]:
        if self.ttl > 0:
            now = monotonic()
            self._items = [item for item in self._items if item.expires_at > now]
        return list(self._items)

    def dismiss(self, notification_id: str) -> bool:
        for index, item in enumerate(self._items):
            if item.id == notification_id:
                del self._items[index]
                return True
        return False

    def clear(self) -> None:
        self._items.clear()
