from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..core.enums import EventType, Role


@dataclass(frozen=True)
class RequestContext:
    """Requester metadata attached to audit events."""

    ip: str = "unknown"
    user_agent: str = "unknown"


@dataclass(frozen=True)
class AuditEvent:
    """Immutable log entry; written once, never updated or deleted."""

    actor_id: str
    actor_email: str
    actor_role: Role
    event: EventType
    resource: str
    timestamp: datetime
    resource_id: Optional[str] = None
    changes: Optional[dict[str, Any]] = None
    ip: str = "unknown"
    user_agent: str = "unknown"
    event_id: Optional[str] = None
