from __future__ import annotations

from functools import wraps
from typing import Optional

from flask import current_app, g, request, session

from ..audit.model import RequestContext
from ..core.enums import Role
from ..core.exceptions import Forbidden, SessionExpired, Unauthenticated
from ..users.model import Account

SESSION_KEY = "sid"


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None


def request_context() -> RequestContext:
    return RequestContext(
        ip=request.remote_addr or "unknown",
        user_agent=request.headers.get("User-Agent", "unknown"),
    )


def current_account() -> Account:
    account = g.get("current_account")
    if account is None:
        raise Unauthenticated()
    return account


def _authenticate() -> Account:
    container = current_app.extensions["container"]
    try:
        account = container.auth_service.authenticate_request(bearer_token(), session.get(SESSION_KEY))
    except SessionExpired:
        session.pop(SESSION_KEY, None)
        raise
    g.current_account = account
    return account


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        _authenticate()
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    """Authenticate, then allow only the given roles (403 otherwise)."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            account = _authenticate()
            if account.role not in roles:
                raise Forbidden(f"User role '{account.role.value}' is not authorized to access this route")
            return view(*args, **kwargs)

        return wrapper

    return decorator
