from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import EventType
from .model import AuditEvent


class AuditRepository(Protocol):
    """Append-only: there is deliberately no update or delete."""

    def append(self, event: AuditEvent) -> str:
        raise NotImplementedError

    def list_events(
        self,
        *,
        actor_id: Optional[str] = None,
        event: Optional[EventType] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[AuditEvent]:
        raise NotImplementedError
