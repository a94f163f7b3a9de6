from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import DESCENDING

from ..core.enums import NotificationType, Priority
from ..database.connection import DatabaseConnection
from ..database.mongo_base import bson_safe, id_str, to_object_id
from .model import Notification
from .repository import NotificationRepository


def _to_notification(doc: Dict[str, Any]) -> Notification:
    return Notification(
        notification_id=id_str(doc["_id"]),
        recipient_id=doc["recipient_id"],
        type=NotificationType(doc["type"]),
        title=doc["title"],
        message=doc["message"],
        created_at=doc["created_at"],
        priority=Priority(doc.get("priority", Priority.MEDIUM.value)),
        read=bool(doc.get("read", False)),
        read_at=doc.get("read_at"),
        metadata=doc.get("metadata") or {},
    )


class MongoNotificationRepository(NotificationRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.notifications

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
        res = self._col.insert_one({
            "recipient_id": recipient_id,
            "type": type.value,
            "title": title,
            "message": message,
            "priority": priority.value,
            "read": False,
            "read_at": None,
            "metadata": bson_safe(metadata or {}),
            "created_at": now,
        })
        return id_str(res.inserted_id)

    def get(self, notification_id: str) -> Optional[Notification]:
        oid = to_object_id(notification_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _to_notification(doc) if doc else None

    def list_for_recipient(self, recipient_id: str, *, unread_only: bool = False, limit: int = 20) -> Sequence[Notification]:
        query: Dict[str, Any] = {"recipient_id": recipient_id}
        if unread_only:
            query["read"] = False
        cursor = self._col.find(query).sort("created_at", DESCENDING).limit(int(limit))
        return [_to_notification(d) for d in cursor]

    def mark_read(self, notification_id: str, *, now: datetime) -> bool:
        oid = to_object_id(notification_id)
        if oid is None:
            return False
        res = self._col.update_one({"_id": oid}, {"$set": {"read": True, "read_at": now}})
        return res.matched_count > 0
