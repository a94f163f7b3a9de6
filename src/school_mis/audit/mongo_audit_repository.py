from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pymongo import DESCENDING

from ..core.enums import EventType, Role
from ..database.connection import DatabaseConnection
from ..database.mongo_base import bson_safe, id_str
from .model import AuditEvent
from .repository import AuditRepository


class MongoAuditRepository(AuditRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.audit_logs

    def append(self, event: AuditEvent) -> str:
        res = self._col.insert_one({
            "actor_id": event.actor_id,
            "actor_email": event.actor_email,
            "actor_role": event.actor_role.value,
            "event": event.event.value,
            "resource": event.resource,
            "resource_id": event.resource_id,
            "changes": bson_safe(event.changes),
            "ip": event.ip,
            "user_agent": event.user_agent,
            "timestamp": event.timestamp,
        })
        return id_str(res.inserted_id)

    def list_events(
        self,
        *,
        actor_id: Optional[str] = None,
        event: Optional[EventType] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[AuditEvent]:
        query: Dict[str, Any] = {}
        if actor_id:
            query["actor_id"] = actor_id
        if event is not None:
            query["event"] = event.value
        if resource:
            query["resource"] = resource
        if resource_id:
            query["resource_id"] = resource_id
        cursor = self._col.find(query).sort("timestamp", DESCENDING).limit(int(limit))
        return [
            AuditEvent(
                event_id=id_str(d["_id"]),
                actor_id=d["actor_id"],
                actor_email=d["actor_email"],
                actor_role=Role(d["actor_role"]),
                event=EventType(d["event"]),
                resource=d["resource"],
                resource_id=d.get("resource_id"),
                changes=d.get("changes"),
                ip=d.get("ip", "unknown"),
                user_agent=d.get("user_agent", "unknown"),
                timestamp=d["timestamp"],
            )
            for d in cursor
        ]
