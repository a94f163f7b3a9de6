"""Server-side sessions with an idle timeout.

Expiry is checked lazily when a request presents the session id; nothing
sweeps stale records in the background.
"""
from __future__ import annotations

import logging
import secrets
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Dict, Optional, Protocol

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SESSION_IDLE_SECONDS
from ..core.enums import Role
from ..core.exceptions import SessionExpired
from ..database.connection import DatabaseConnection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    account_id: str
    role: Role
    last_activity: datetime


class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[SessionRecord]:
        raise NotImplementedError

    def set(self, record: SessionRecord) -> None:
        raise NotImplementedError

    def delete(self, session_id: str) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    """Process-local store; fine for a single worker."""

    def __init__(self):
        self._records: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def set(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.session_id] = record

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._records.pop(session_id, None)


class MongoSessionStore(SessionStore):
    """Shared store for multi-instance deployments (collection ``sessions``)."""

    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.sessions

    def get(self, session_id: str) -> Optional[SessionRecord]:
        doc = self._col.find_one({"_id": session_id})
        if not doc:
            return None
        return SessionRecord(
            session_id=doc["_id"],
            account_id=doc["account_id"],
            role=Role(doc["role"]),
            last_activity=doc["last_activity"],
        )

    def set(self, record: SessionRecord) -> None:
        self._col.replace_one(
            {"_id": record.session_id},
            {
                "_id": record.session_id,
                "account_id": record.account_id,
                "role": record.role.value,
                "last_activity": record.last_activity,
            },
            upsert=True,
        )

    def delete(self, session_id: str) -> None:
        self._col.delete_one({"_id": session_id})


class SessionManager:
    def __init__(
        self,
        store: SessionStore,
        *,
        idle_timeout: timedelta = timedelta(seconds=DEFAULT_SESSION_IDLE_SECONDS),
    ):
        self._store = store
        self._idle_timeout = idle_timeout

    @property
    def idle_timeout(self) -> timedelta:
        return self._idle_timeout

    def create(self, account_id: str, role: Role, *, now: Optional[datetime] = None) -> SessionRecord:
        record = SessionRecord(
            session_id=secrets.token_urlsafe(32),
            account_id=account_id,
            role=role,
            last_activity=now or now_local(),
        )
        self._store.set(record)
        return record

    def check_idle(self, session_id: str, *, now: Optional[datetime] = None) -> Optional[SessionRecord]:
        """Validate and advance a session.

        Unknown ids return None. A session idle for longer than the timeout is
        destroyed and SessionExpired is raised; otherwise ``last_activity``
        moves to ``now``.
        """

        now = now or now_local()
        record = self._store.get(session_id)
        if record is None:
            return None

        if now - record.last_activity > self._idle_timeout:
            self._store.delete(session_id)
            logger.info("Session for account %s expired after inactivity", record.account_id)
            raise SessionExpired()

        touched = replace(record, last_activity=now)
        self._store.set(touched)
        return touched

    def destroy(self, session_id: Optional[str]) -> None:
        if session_id:
            self._store.delete(session_id)
