from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Account, NewAccount


class AccountRepository(Protocol):
    """Repository interface for accounts (the credential store).

    Note (DIP): services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, account_id: str) -> Optional[Account]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Account]:
        raise NotImplementedError

    def get_by_reset_token(self, token_hash: str, *, now: datetime) -> Optional[Account]:
        """Account whose reset token matches and has not expired yet."""
        raise NotImplementedError

    def create(self, account: NewAccount, *, now: datetime) -> str:
        raise NotImplementedError

    def delete(self, account_id: str) -> bool:
        raise NotImplementedError

    def increment_failed_logins(self, account_id: str, *, now: datetime) -> int:
        """Atomically count one more failed login and return the new total.

        A lock that has already elapsed is cleared and the count restarts at 1.
        """
        raise NotImplementedError

    def lock(self, account_id: str, *, until: datetime) -> None:
        raise NotImplementedError

    def record_successful_login(self, account_id: str, *, now: datetime) -> None:
        """Reset attempts/lock and stamp last_login + last_active."""
        raise NotImplementedError

    def touch_last_active(self, account_id: str, *, now: datetime) -> None:
        raise NotImplementedError

    def set_password(self, account_id: str, *, password_hash: str, now: datetime) -> None:
        """Store a new hash and clear any pending reset token."""
        raise NotImplementedError

    def set_reset_token(self, account_id: str, *, token_hash: str, expires: datetime) -> None:
        raise NotImplementedError

    def set_active(self, account_id: str, *, is_active: bool) -> bool:
        raise NotImplementedError

    def update_details(self, account_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None,
                       profile_picture: Optional[str] = None) -> bool:
        raise NotImplementedError

    def list_accounts(self, *, role: Optional[Role] = None, active_only: bool = False,
                      limit: int = 200) -> Sequence[Account]:
        raise NotImplementedError
