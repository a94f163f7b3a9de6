from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.responses import success
from ..common.validators import require_enum
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    service = container.user_service

    @app.route("/api/users", methods=["GET"], endpoint="users_list")
    @roles_required(Role.ADMIN)
    def list_users():
        role = request.args.get("role")
        accounts = service.list_accounts(
            role=require_enum(Role, role, "Role") if role else None,
            active_only=request.args.get("active") == "true",
        )
        return success([a.public() for a in accounts], count=len(accounts))

    @app.route("/api/users/<account_id>", methods=["GET"], endpoint="users_get")
    @roles_required(Role.ADMIN, Role.TEACHER)
    def get_user(account_id: str):
        return success(service.get_account(account_id).public())

    @app.route("/api/users/<account_id>", methods=["DELETE"], endpoint="users_delete")
    @roles_required(Role.ADMIN)
    def delete_user(account_id: str):
        service.deactivate_account(current_account(), account_id, context=request_context())
        return success(message="User deactivated successfully")
