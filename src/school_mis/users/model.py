from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Account:
    """Domain entity: the identity behind every admin, teacher and student.

    Role-specific data lives in separate profile records keyed by
    ``account_id`` (see students/teachers), resolved through ``role``.
    """

    account_id: str
    email: str
    password_hash: str
    role: Role
    full_name: str
    phone: Optional[str] = None
    profile_picture: str = ""
    is_active: bool = True
    login_attempts: int = 0
    lock_until: Optional[datetime] = None
    password_changed_at: Optional[datetime] = None
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    last_login: Optional[datetime] = None
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def is_locked(self, now: datetime) -> bool:
        return self.lock_until is not None and self.lock_until > now

    def public(self) -> dict:
        """Fields safe to send to a client (no hashes or reset tokens)."""
        return {
            "id": self.account_id,
            "email": self.email,
            "role": self.role.value,
            "fullName": self.full_name,
            "phone": self.phone,
            "profilePicture": self.profile_picture,
            "isActive": self.is_active,
            "lastLogin": self.last_login,
            "lastActive": self.last_active,
            "createdAt": self.created_at,
        }


@dataclass(frozen=True)
class NewAccount:
    email: str
    password_hash: str
    role: Role
    full_name: str
    phone: Optional[str] = None
