from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..core.enums import NotificationType, Priority


@dataclass(frozen=True)
class Notification:
    notification_id: str
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    priority: Priority = Priority.MEDIUM
    read: bool = False
    read_at: Optional[datetime] = None
    metadata: dict[str, Any] = field(default_factory=dict)
