from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..common.datetime_utils import now_local, to_day
from ..common.validators import require_enum, require_max_length, require_min_length
from ..core.enums import DisciplineType, EventType, NotificationType, Priority, Role, SeverityLevel
from ..core.exceptions import Conflict, NotFound
from ..notifications.service import NotificationService
from ..users.model import Account
from ..users.repository import AccountRepository
from .model import DisciplineRecord, NewDisciplineRecord
from .repository import DisciplineRepository

_URGENT = {SeverityLevel.HIGH, SeverityLevel.CRITICAL}


class DisciplineService:
    def __init__(
        self,
        discipline: DisciplineRepository,
        accounts: AccountRepository,
        audit: AuditService,
        notifications: NotificationService,
    ):
        self._discipline = discipline
        self._accounts = accounts
        self._audit = audit
        self._notifications = notifications

    def create_record(
        self,
        actor: Account,
        *,
        student_id: str,
        type: Any,
        description: str,
        severity: Any,
        day: Optional[date] = None,
        action_taken: Optional[str] = None,
        remarks: Optional[str] = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> DisciplineRecord:
        kind = require_enum(DisciplineType, type, "Type")
        level = require_enum(SeverityLevel, severity, "Severity")
        description = (description or "").strip()
        require_min_length(description, "Description", 10)
        require_max_length(description, "Description", 500)
        require_max_length(action_taken, "Action taken", 500)
        require_max_length(remarks, "Remarks", 500)

        student = self._accounts.get_by_id(student_id)
        if not student or student.role != Role.STUDENT:
            raise NotFound("Student not found")

        now = now or now_local()
        record_id = self._discipline.create(
            NewDisciplineRecord(
                student_id=student.account_id,
                teacher_id=actor.account_id,
                day=to_day(day or now),
                type=kind,
                description=description,
                severity=level,
                action_taken=action_taken,
                remarks=remarks,
            ),
            now=now,
        )
        self._audit.record(
            actor,
            EventType.CREATE,
            "discipline",
            resource_id=record_id,
            changes={"studentId": student.account_id, "type": kind.value, "severity": level.value},
            context=context,
            now=now,
        )
        self._notifications.notify(
            student.account_id,
            NotificationType.DISCIPLINE,
            f"Discipline record: {kind.value.title()}",
            description,
            priority=Priority.HIGH if level in _URGENT else Priority.MEDIUM,
            metadata={"recordId": record_id},
            now=now,
        )
        return self._get(record_id)

    def list_for_student(self, student_id: str, *, limit: int = 50) -> Sequence[DisciplineRecord]:
        return self._discipline.list_for_student(student_id, limit=int(limit))

    def resolve(
        self,
        actor: Account,
        record_id: str,
        *,
        remarks: Optional[str] = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> DisciplineRecord:
        record = self._get(record_id)
        if record.resolved:
            raise Conflict("Discipline record is already resolved")
        require_max_length(remarks, "Remarks", 500)

        now = now or now_local()
        self._discipline.resolve(record_id, resolved_by=actor.account_id, remarks=remarks, now=now)
        self._audit.record(
            actor,
            EventType.UPDATE,
            "discipline",
            resource_id=record_id,
            changes={"resolved": {"from": False, "to": True}},
            context=context,
            now=now,
        )
        return self._get(record_id)

    def _get(self, record_id: str) -> DisciplineRecord:
        record = self._discipline.get(record_id)
        if not record:
            raise NotFound("Discipline record not found")
        return record
