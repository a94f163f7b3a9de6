from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..core.enums import NotificationType, Priority
from ..core.exceptions import NotFound
from ..students.repository import StudentProfileRepository
from ..users.repository import AccountRepository
from .model import Notification
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_absentee_alert(self, parent_email: str, student_name: str, day: Any, class_name: str,
                            section: str) -> bool:
        raise NotImplementedError

    def send_password_reset(self, email: str, token: str) -> bool:
        raise NotImplementedError


class NotificationService:
    """Outbound alerts (email) plus in-app notifications.

    Email dispatch is best-effort: nothing in here raises because a mail
    could not be sent.
    """

    def __init__(
        self,
        notifications: NotificationRepository,
        mailer: Mailer,
        accounts: AccountRepository,
        students: StudentProfileRepository,
        classes: ClassRepository,
    ):
        self._notifications = notifications
        self._mailer = mailer
        self._accounts = accounts
        self._students = students
        self._classes = classes

    def send_absentee_notification(self, student_id: str, day: date, class_id: str, section: str) -> bool:
        try:
            profile = self._students.get(student_id)
            account = self._accounts.get_by_id(student_id)
            if not profile or not account or not profile.parent_email:
                logger.info("No parent email found for student %s", student_id)
                return False

            school_class = self._classes.get_by_id(class_id)
            if not school_class:
                logger.info("Class not found: %s", class_id)
                return False

            sent = self._mailer.send_absentee_alert(
                profile.parent_email,
                account.full_name,
                day,
                school_class.class_name,
                section,
            )
        except Exception:
            logger.exception("Failed to send absentee notification for student %s", student_id)
            return False

        if sent:
            logger.info("Absentee alert sent to %s for %s", profile.parent_email, account.full_name)
        else:
            logger.error("Failed to send absentee alert to %s", profile.parent_email)
        return bool(sent)

    def send_password_reset(self, email: str, token: str) -> bool:
        try:
            return bool(self._mailer.send_password_reset(email, token))
        except Exception:
            logger.exception("Failed to send password reset email to %s", email)
            return False

    def notify(
        self,
        recipient_id: str,
        type: NotificationType,
        title: str,
        message: str,
        *,
        priority: Priority = Priority.MEDIUM,
        metadata: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> str:
        return self._notifications.create(
            recipient_id=recipient_id,
            type=type,
            title=title[:100],
            message=message[:500],
            priority=priority,
            metadata=metadata,
            now=now or now_local(),
        )

    def list_for(self, recipient_id: str, *, unread_only: bool = False, limit: int = 20) -> Sequence[Notification]:
        return self._notifications.list_for_recipient(recipient_id, unread_only=unread_only, limit=int(limit))

    def mark_read(self, notification_id: str, *, recipient_id: str, now: Optional[datetime] = None) -> Notification:
        n = self._notifications.get(notification_id)
        # someone else's notification looks exactly like a missing one
        if not n or n.recipient_id != recipient_id:
            raise NotFound("Notification not found")
        self._notifications.mark_read(notification_id, now=now or now_local())
        return self._notifications.get(notification_id) or n
