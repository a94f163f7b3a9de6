from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import NotificationType, Priority
from .model import Notification


class NotificationRepository(Protocol):
    def create(
        self,
        *,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        priority: Priority,
        metadata: Optional[dict[str, Any]],
        now: datetime,
    ) -> str:
        raise NotImplementedError

    def get(self, notification_id: str) -> Optional[Notification]:
        raise NotImplementedError

    def list_for_recipient(self, recipient_id: str, *, unread_only: bool = False, limit: int = 20) -> Sequence[Notification]:
        raise NotImplementedError

    def mark_read(self, notification_id: str, *, now: datetime) -> bool:
        raise NotImplementedError
