from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Sequence

from werkzeug.security import generate_password_hash

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..common.datetime_utils import now_local
from ..common.validators import require_email, require_non_empty, require_phone, require_strong_password
from ..core.enums import EventType, Role
from ..core.exceptions import DuplicateEntry, NotFound, ValidationError
from .model import Account, NewAccount
from .repository import AccountRepository

logger = logging.getLogger(__name__)


class UserService:
    """Use case: manage accounts (admin).

    Students and teachers get their account through their own services, which
    call ``create_account`` first and then write the role profile. When that
    profile write fails they call ``discard_account`` so no orphan account
    keeps the email reserved.
    """

    def __init__(self, accounts: AccountRepository, audit: AuditService):
        self._accounts = accounts
        self._audit = audit

    def create_account(
        self,
        *,
        email: str,
        password: str,
        role: Role,
        full_name: str,
        phone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Account:
        email = require_email(email)
        full_name = require_non_empty(full_name, "Full name")
        require_strong_password(password)
        if phone:
            phone = require_phone(phone)

        if self._accounts.get_by_email(email):
            raise DuplicateEntry("An account with this email already exists")

        account_id = self._accounts.create(
            NewAccount(
                email=email,
                password_hash=generate_password_hash(password),
                role=role,
                full_name=full_name,
                phone=phone,
            ),
            now=now or now_local(),
        )
        account = self._accounts.get_by_id(account_id)
        if not account:
            raise NotFound("Account not found after creation")
        return account

    def get_account(self, account_id: str) -> Account:
        account = self._accounts.get_by_id(account_id)
        if not account:
            raise NotFound("User not found")
        return account

    def discard_account(self, account_id: str) -> None:
        if self._accounts.delete(account_id):
            logger.warning("Rolled back account %s after its profile could not be stored", account_id)

    def list_accounts(self, *, role: Optional[Role] = None, active_only: bool = False) -> Sequence[Account]:
        return self._accounts.list_accounts(role=role, active_only=active_only)

    def deactivate_account(self, actor: Account, account_id: str, *, context: Optional[RequestContext] = None) -> Account:
        account = self.get_account(account_id)
        if account.account_id == actor.account_id:
            raise ValidationError("You cannot deactivate your own account")

        self._accounts.set_active(account.account_id, is_active=False)
        self._audit.record(
            actor,
            EventType.DELETE,
            "user",
            resource_id=account.account_id,
            changes={"isActive": {"from": account.is_active, "to": False}},
            context=context,
        )
        return self.get_account(account.account_id)
