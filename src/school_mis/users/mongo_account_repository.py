from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING, ReturnDocument

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mongo_base import id_str, to_object_id, translate_duplicates
from .model import Account, NewAccount
from .repository import AccountRepository


def _to_account(doc: Dict[str, Any]) -> Account:
    return Account(
        account_id=id_str(doc["_id"]),
        email=doc["email"],
        password_hash=doc.get("password_hash", ""),
        role=Role(doc["role"]),
        full_name=doc.get("full_name", ""),
        phone=doc.get("phone"),
        profile_picture=doc.get("profile_picture", ""),
        is_active=bool(doc.get("is_active", True)),
        login_attempts=int(doc.get("login_attempts", 0)),
        lock_until=doc.get("lock_until"),
        password_changed_at=doc.get("password_changed_at"),
        password_reset_token=doc.get("password_reset_token"),
        password_reset_expires=doc.get("password_reset_expires"),
        last_login=doc.get("last_login"),
        last_active=doc.get("last_active"),
        created_at=doc.get("created_at"),
    )


class MongoAccountRepository(AccountRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.accounts

    def _update(self, account_id: str, changes: Dict[str, Any]) -> bool:
        oid = to_object_id(account_id)
        if oid is None:
            return False
        res = self._col.update_one({"_id": oid}, changes)
        return res.matched_count > 0

    def get_by_id(self, account_id: str) -> Optional[Account]:
        oid = to_object_id(account_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _to_account(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[Account]:
        doc = self._col.find_one({"email": (email or "").strip().lower()})
        return _to_account(doc) if doc else None

    def get_by_reset_token(self, token_hash: str, *, now: datetime) -> Optional[Account]:
        doc = self._col.find_one({
            "password_reset_token": token_hash,
            "password_reset_expires": {"$gt": now},
        })
        return _to_account(doc) if doc else None

    def create(self, account: NewAccount, *, now: datetime) -> str:
        doc = {
            "email": account.email.strip().lower(),
            "password_hash": account.password_hash,
            "role": account.role.value,
            "full_name": account.full_name,
            "phone": account.phone,
            "profile_picture": "",
            "is_active": True,
            "login_attempts": 0,
            "lock_until": None,
            "password_changed_at": now,
            "created_at": now,
            "updated_at": now,
        }
        with translate_duplicates("An account with this email already exists"):
            res = self._col.insert_one(doc)
        return id_str(res.inserted_id)

    def delete(self, account_id: str) -> bool:
        oid = to_object_id(account_id)
        if oid is None:
            return False
        return self._col.delete_one({"_id": oid}).deleted_count > 0

    def increment_failed_logins(self, account_id: str, *, now: datetime) -> int:
        oid = to_object_id(account_id)
        if oid is None:
            return 0
        lock_elapsed = {"$and": [
            {"$eq": [{"$type": "$lock_until"}, "date"]},
            {"$lte": ["$lock_until", now]},
        ]}
        # update pipeline: read and write the counter in one server-side step
        doc = self._col.find_one_and_update(
            {"_id": oid},
            [{"$set": {
                "login_attempts": {
                    "$cond": [lock_elapsed, 1, {"$add": [{"$ifNull": ["$login_attempts", 0]}, 1]}],
                },
                "lock_until": {"$cond": [lock_elapsed, None, "$lock_until"]},
            }}],
            projection={"login_attempts": 1},
            return_document=ReturnDocument.AFTER,
        )
        return int(doc["login_attempts"]) if doc else 0

    def lock(self, account_id: str, *, until: datetime) -> None:
        self._update(account_id, {"$set": {"lock_until": until}})

    def record_successful_login(self, account_id: str, *, now: datetime) -> None:
        self._update(account_id, {
            "$set": {"login_attempts": 0, "lock_until": None, "last_login": now, "last_active": now},
        })

    def touch_last_active(self, account_id: str, *, now: datetime) -> None:
        self._update(account_id, {"$set": {"last_active": now}})

    def set_password(self, account_id: str, *, password_hash: str, now: datetime) -> None:
        self._update(account_id, {
            "$set": {
                "password_hash": password_hash,
                "password_changed_at": now,
                "updated_at": now,
                "password_reset_token": None,
                "password_reset_expires": None,
            },
        })

    def set_reset_token(self, account_id: str, *, token_hash: str, expires: datetime) -> None:
        self._update(account_id, {
            "$set": {"password_reset_token": token_hash, "password_reset_expires": expires},
        })

    def set_active(self, account_id: str, *, is_active: bool) -> bool:
        return self._update(account_id, {"$set": {"is_active": bool(is_active)}})

    def update_details(self, account_id: str, *, full_name: Optional[str] = None, phone: Optional[str] = None,
                       profile_picture: Optional[str] = None) -> bool:
        changes = {
            k: v
            for k, v in {"full_name": full_name, "phone": phone, "profile_picture": profile_picture}.items()
            if v is not None
        }
        if not changes:
            return self.get_by_id(account_id) is not None
        return self._update(account_id, {"$set": changes})

    def list_accounts(self, *, role: Optional[Role] = None, active_only: bool = False,
                      limit: int = 200) -> Sequence[Account]:
        query: Dict[str, Any] = {}
        if role is not None:
            query["role"] = role.value
        if active_only:
            query["is_active"] = True
        cursor = self._col.find(query).sort("full_name", ASCENDING).limit(int(limit))
        return [_to_account(d) for d in cursor]
