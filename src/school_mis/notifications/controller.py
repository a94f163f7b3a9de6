from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, login_required
from ..common.responses import success
from ..common.validators import require_int_range
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.notification_service

    @app.route("/api/notifications", methods=["GET"], endpoint="notifications_list")
    @login_required
    def list_notifications():
        rows = service.list_for(
            current_account().account_id,
            unread_only=request.args.get("unread") == "true",
            limit=require_int_range(request.args.get("limit", 20), "Limit", 1, 100),
        )
        return success(rows, count=len(rows))

    @app.route("/api/notifications/<notification_id>/read", methods=["PATCH"], endpoint="notifications_read")
    @login_required
    def mark_read(notification_id: str):
        notification = service.mark_read(notification_id, recipient_id=current_account().account_id)
        return success(notification, message="Notification marked as read")
