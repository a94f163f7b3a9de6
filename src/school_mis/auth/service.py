from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..common.datetime_utils import minutes_until, now_local
from ..common.validators import require_non_empty, require_strong_password
from ..core.constants import LOCK_MINUTES, MAX_LOGIN_ATTEMPTS, RESET_TOKEN_BYTES, RESET_TOKEN_MINUTES
from ..core.enums import EventType, NotificationType, Priority, Role
from ..core.exceptions import (
    AccountDeactivated,
    AccountLocked,
    InvalidCredentials,
    InvalidOrExpiredToken,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from ..notifications.service import NotificationService
from ..students.repository import StudentProfileRepository
from ..teachers.repository import TeacherProfileRepository
from ..users.model import Account
from ..users.repository import AccountRepository
from .sessions import SessionManager
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    expires_in: int  # milliseconds
    user: dict[str, Any]
    session_id: str


def hash_reset_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def _password_matches(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password)
    except (TypeError, ValueError):
        # placeholder or corrupted hashes never match
        return False


class AuthService:
    """Use case: login/logout, request authentication and password lifecycle."""

    def __init__(
        self,
        accounts: AccountRepository,
        tokens: TokenIssuer,
        sessions: SessionManager,
        audit: AuditService,
        notifications: NotificationService,
        students: StudentProfileRepository,
        teachers: TeacherProfileRepository,
    ):
        self._accounts = accounts
        self._tokens = tokens
        self._sessions = sessions
        self._audit = audit
        self._notifications = notifications
        self._students = students
        self._teachers = teachers

    def login(
        self,
        email: str,
        password: str,
        *,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> LoginResult:
        if not (email or "").strip() or not password:
            raise ValidationError("Please provide email and password")
        now = now or now_local()

        account = self._accounts.get_by_email(email.strip().lower())
        if not account:
            raise InvalidCredentials()

        if account.is_locked(now):
            remaining = minutes_until(account.lock_until, now)
            raise AccountLocked(
                f"Account is locked. Try again in {remaining} minutes",
                remaining_minutes=remaining,
            )

        if not account.is_active:
            raise AccountDeactivated()

        if not _password_matches(account.password_hash, password):
            self._register_failure(account, now)

        self._accounts.record_successful_login(account.account_id, now=now)
        access_token = self._tokens.issue_access(account.account_id)
        refresh_token = self._tokens.issue_refresh(account.account_id)
        session = self._sessions.create(account.account_id, account.role, now=now)

        self._audit.record(account, EventType.LOGIN, "auth", resource_id=account.account_id, context=context, now=now)
        logger.info("Login succeeded for %s", account.email)

        return LoginResult(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self._tokens.access_ttl.total_seconds() * 1000),
            user=self.summary(account),
            session_id=session.session_id,
        )

    def _register_failure(self, account: Account, now: datetime) -> None:
        # counted in the store so concurrent failures never overwrite each other
        attempts = self._accounts.increment_failed_logins(account.account_id, now=now)

        if attempts >= MAX_LOGIN_ATTEMPTS:
            self._accounts.lock(account.account_id, until=now + timedelta(minutes=LOCK_MINUTES))
            logger.warning("Account %s locked after %s failed logins", account.email, attempts)
            raise AccountLocked(
                f"Too many failed login attempts. Account locked for {LOCK_MINUTES} minutes",
                remaining_minutes=LOCK_MINUTES,
            )

        logger.warning("Failed login for %s (%s/%s)", account.email, attempts, MAX_LOGIN_ATTEMPTS)
        raise InvalidCredentials(f"Invalid credentials. {MAX_LOGIN_ATTEMPTS - attempts} attempts remaining")

    def summary(self, account: Account) -> dict[str, Any]:
        """Client-facing user summary, enriched from the role profile."""
        data: dict[str, Any] = {
            "id": account.account_id,
            "email": account.email,
            "fullName": account.full_name,
            "role": account.role.value,
            "profilePicture": account.profile_picture,
        }
        if account.role == Role.STUDENT:
            profile = self._students.get(account.account_id)
            if profile:
                data.update(
                    studentId=profile.student_code,
                    classId=profile.class_id,
                    section=profile.section,
                    rollNumber=profile.roll_number,
                )
        elif account.role == Role.TEACHER:
            profile = self._teachers.get(account.account_id)
            if profile:
                data.update(teacherId=profile.teacher_code, subjects=list(profile.subjects))
        return data

    def logout(
        self,
        account: Account,
        session_id: Optional[str],
        *,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self._sessions.destroy(session_id)
        self._audit.record(account, EventType.LOGOUT, "auth", resource_id=account.account_id, context=context, now=now)

    def authenticate_request(
        self,
        bearer_token: Optional[str],
        session_id: Optional[str],
        *,
        now: Optional[datetime] = None,
    ) -> Account:
        now = now or now_local()

        # idle check runs before anything else so a stale session is torn down
        # even when a bearer token is also presented
        session = self._sessions.check_idle(session_id, now=now) if session_id else None

        if bearer_token:
            account_id = self._tokens.verify_access(bearer_token)
        elif session is not None:
            account_id = session.account_id
        else:
            raise Unauthenticated()

        account = self._accounts.get_by_id(account_id)
        if not account or not account.is_active:
            raise Unauthenticated("Not authorized - User not found or inactive")
        return account

    def refresh(self, refresh_token: Optional[str]) -> str:
        if not refresh_token:
            raise ValidationError("Refresh token required")
        account_id = self._tokens.verify_refresh(refresh_token)
        account = self._accounts.get_by_id(account_id)
        if not account or not account.is_active:
            raise Unauthenticated("Not authorized - User not found or inactive")
        return self._tokens.issue_access(account.account_id)

    def change_password(
        self,
        account_id: str,
        current_password: str,
        new_password: str,
        *,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> None:
        require_non_empty(current_password, "Current password")
        now = now or now_local()

        account = self._accounts.get_by_id(account_id)
        if not account:
            raise NotFound("User not found")
        if not _password_matches(account.password_hash, current_password):
            raise ValidationError("Current password is incorrect")
        require_strong_password(new_password, "New password")
        if new_password == current_password:
            raise ValidationError("New password must be different from the current password")

        self._accounts.set_password(account.account_id, password_hash=generate_password_hash(new_password), now=now)
        self._audit.record(account, EventType.UPDATE, "password", resource_id=account.account_id, context=context, now=now)
        self._notifications.notify(
            account.account_id,
            NotificationType.SYSTEM,
            "Password Changed",
            "Your password has been changed successfully. If you did not make this change, "
            "please contact the administrator immediately.",
            priority=Priority.HIGH,
            now=now,
        )

    def forgot_password(self, email: str, *, now: Optional[datetime] = None) -> str:
        """Issue a reset token; only its sha256 digest is stored."""
        require_non_empty(email, "Email")
        now = now or now_local()

        account = self._accounts.get_by_email(email.strip().lower())
        if not account:
            raise NotFound("No user found with this email")

        raw = secrets.token_hex(RESET_TOKEN_BYTES)
        self._accounts.set_reset_token(
            account.account_id,
            token_hash=hash_reset_token(raw),
            expires=now + timedelta(minutes=RESET_TOKEN_MINUTES),
        )
        return raw

    def reset_password(self, token: str, new_password: str, *, now: Optional[datetime] = None) -> None:
        require_non_empty(token, "Token")
        now = now or now_local()

        account = self._accounts.get_by_reset_token(hash_reset_token(token), now=now)
        if not account:
            raise InvalidOrExpiredToken()
        require_strong_password(new_password)

        self._accounts.set_password(account.account_id, password_hash=generate_password_hash(new_password), now=now)
        logger.info("Password reset completed for %s", account.email)

    def me(self, account: Account, *, now: Optional[datetime] = None) -> dict[str, Any]:
        self._accounts.touch_last_active(account.account_id, now=now or now_local())
        return self.summary(account)
