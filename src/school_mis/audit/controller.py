from __future__ import annotations

from flask import Flask, request

from ..auth.guards import roles_required
from ..common.responses import success
from ..common.validators import require_enum, require_int_range
from ..container import Container
from ..core.enums import EventType, Role


def register(app: Flask, container: Container) -> None:
    @app.route("/api/audit-logs", methods=["GET"], endpoint="audit_logs")
    @roles_required(Role.ADMIN)
    def audit_logs():
        event = request.args.get("event")
        events = container.audit_service.list_events(
            actor_id=request.args.get("userId") or None,
            event=require_enum(EventType, event, "Event") if event else None,
            resource=request.args.get("resource") or None,
            resource_id=request.args.get("resourceId") or None,
            limit=require_int_range(request.args.get("limit", 100), "Limit", 1, 500),
        )
        return success(events, count=len(events))
