from __future__ import annotations

import logging

from flask import Flask, request, session

from ..common.responses import success
from ..container import Container
from .guards import SESSION_KEY, current_account, login_required, request_context

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="auth_login")
    def login():
        body = request.get_json(silent=True) or {}
        result = container.auth_service.login(
            body.get("email", ""),
            body.get("password", ""),
            context=request_context(),
        )
        session.clear()
        session[SESSION_KEY] = result.session_id
        return success(
            {
                "token": result.access_token,
                "refreshToken": result.refresh_token,
                "expiresIn": result.expires_in,
                "user": result.user,
            },
            message="Login successful",
        )

    @app.route("/api/auth/logout", methods=["POST"], endpoint="auth_logout")
    @login_required
    def logout():
        container.auth_service.logout(current_account(), session.get(SESSION_KEY), context=request_context())
        session.clear()
        return success(message="Logged out successfully")

    @app.route("/api/auth/refresh-token", methods=["POST"], endpoint="auth_refresh")
    def refresh_token():
        body = request.get_json(silent=True) or {}
        token = container.auth_service.refresh(body.get("refreshToken"))
        return success({"token": token}, message="Token refreshed")

    @app.route("/api/auth/me", methods=["GET"], endpoint="auth_me")
    @login_required
    def me():
        return success(container.auth_service.me(current_account()))

    @app.route("/api/auth/change-password", methods=["POST"], endpoint="auth_change_password")
    @login_required
    def change_password():
        body = request.get_json(silent=True) or {}
        container.auth_service.change_password(
            current_account().account_id,
            body.get("currentPassword", ""),
            body.get("newPassword", ""),
            context=request_context(),
        )
        return success(message="Password changed successfully")

    @app.route("/api/auth/forgot-password", methods=["POST"], endpoint="auth_forgot_password")
    def forgot_password():
        body = request.get_json(silent=True) or {}
        email = body.get("email", "")
        token = container.auth_service.forgot_password(email)
        sent = container.notification_service.send_password_reset(email.strip().lower(), token)
        if not sent:
            logger.warning("Password reset email could not be delivered to %s", email)
        return success(message="Password reset instructions sent to your email")

    @app.route("/api/auth/reset-password", methods=["POST"], endpoint="auth_reset_password")
    def reset_password():
        body = request.get_json(silent=True) or {}
        container.auth_service.reset_password(body.get("token", ""), body.get("newPassword", ""))
        return success(message="Password reset successful")
