from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import EventType
from ..users.model import Account
from .model import AuditEvent, RequestContext
from .repository import AuditRepository

logger = logging.getLogger(__name__)


class AuditService:
    """Use case: record security-relevant and state-changing actions.

    Events are written synchronously with the operation they document; a
    failing write propagates so the caller's request fails with it.
    """

    def __init__(self, audit: AuditRepository):
        self._audit = audit

    def record(
        self,
        actor: Account,
        event: EventType,
        resource: str,
        *,
        resource_id: Optional[str] = None,
        changes: Optional[dict[str, Any]] = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> AuditEvent:
        context = context or RequestContext()
        entry = AuditEvent(
            actor_id=actor.account_id,
            actor_email=actor.email,
            actor_role=actor.role,
            event=event,
            resource=resource,
            resource_id=resource_id,
            changes=changes,
            ip=context.ip,
            user_agent=context.user_agent,
            timestamp=now or now_local(),
        )
        self._audit.append(entry)
        logger.debug("audit %s %s/%s by %s", event.value, resource, resource_id or "-", actor.email)
        return entry

    def list_events(
        self,
        *,
        actor_id: Optional[str] = None,
        event: Optional[EventType] = None,
        resource: Optional[str] = None,
        resource_id: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[AuditEvent]:
        return self._audit.list_events(
            actor_id=actor_id,
            event=event,
            resource=resource,
            resource_id=resource_id,
            limit=max(1, min(int(limit), 500)),
        )
