from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..classes.repository import ClassRepository
from ..common.datetime_utils import (
    academic_year_bounds,
    month_bounds,
    now_local,
    percentage,
    to_day,
)
from ..common.validators import require_enum, require_int_range, require_max_length, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_LATE_MINUTES, MAX_REMARKS_LENGTH
from ..core.enums import AttendanceStatus, EventType, Role
from ..core.exceptions import DomainError, NotFound, ValidationError
from ..notifications.service import NotificationService
from ..students.repository import StudentProfileRepository
from ..users.model import Account
from ..users.repository import AccountRepository
from .model import (
    AttendanceRecord,
    AttendanceStats,
    BulkEntry,
    BulkMarkResult,
    ClassAttendanceRow,
    StudentMonthRow,
)
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

Day = Union[date, datetime]


def build_stats(counts: Mapping[AttendanceStatus, int]) -> AttendanceStats:
    present = int(counts.get(AttendanceStatus.PRESENT, 0))
    absent = int(counts.get(AttendanceStatus.ABSENT, 0))
    late = int(counts.get(AttendanceStatus.LATE, 0))
    leave = int(counts.get(AttendanceStatus.LEAVE, 0))
    total = present + absent + late + leave
    return AttendanceStats(
        total_days=total,
        present_days=present,
        absent_days=absent,
        late_days=late,
        leave_days=leave,
        attendance_percentage=percentage(present, total),
    )


def _count(records: Iterable[AttendanceRecord]) -> Dict[AttendanceStatus, int]:
    counts = {s: 0 for s in AttendanceStatus}
    for r in records:
        counts[r.status] += 1
    return counts


class AttendanceService:
    """Use case: the attendance ledger.

    One record per (student, day). Marking is an upsert, so repeating a call
    converges on a single record holding the last status. Every mutation is
    audited; absences additionally notify the parent, best-effort.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        accounts: AccountRepository,
        students: StudentProfileRepository,
        classes: ClassRepository,
        audit: AuditService,
        notifications: NotificationService,
    ):
        self._attendance = attendance
        self._accounts = accounts
        self._students = students
        self._classes = classes
        self._audit = audit
        self._notifications = notifications

    @staticmethod
    def _validate_details(remarks: Optional[str], late_minutes: Any) -> tuple[Optional[str], Optional[int]]:
        remarks = (remarks or "").strip() or None
        require_max_length(remarks, "Remarks", MAX_REMARKS_LENGTH)
        if late_minutes is None or late_minutes == "":
            return remarks, None
        return remarks, require_int_range(late_minutes, "Late minutes", 0, MAX_LATE_MINUTES)

    def _require_student(self, student_id: str) -> Account:
        account = self._accounts.get_by_id(student_id)
        if not account or account.role != Role.STUDENT or not self._students.get(account.account_id):
            raise NotFound(f"Student not found: {student_id}")
        return account

    def _notify_absent(self, record: AttendanceRecord) -> None:
        try:
            self._notifications.send_absentee_notification(
                record.student_id, record.day, record.class_id, record.section
            )
        except Exception:
            logger.exception("Absentee notification failed for student %s", record.student_id)

    def mark_attendance(
        self,
        *,
        student_id: str,
        class_id: str,
        section: str,
        day: Day,
        status: Any,
        marked_by: Account,
        remarks: Optional[str] = None,
        late_minutes: Any = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        status = require_enum(AttendanceStatus, status, "Status")
        remarks, late = self._validate_details(remarks, late_minutes)
        section = require_non_empty(section, "Section").upper()
        if day is None:
            raise ValidationError("Date is required")

        self._require_student(student_id)
        if not self._classes.get_by_id(class_id):
            raise NotFound("Class not found")

        now = now or now_local()
        outcome = self._attendance.upsert(
            student_id=student_id,
            class_id=class_id,
            section=section,
            day=to_day(day),
            status=status,
            marked_by=marked_by.account_id,
            remarks=remarks,
            late_minutes=late,
            now=now,
        )
        record = outcome.record

        self._audit.record(
            marked_by,
            EventType.CREATE if outcome.created else EventType.UPDATE,
            "attendance",
            resource_id=record.record_id,
            changes={"status": status.value, "date": record.day.isoformat(), "studentId": student_id},
            context=context,
            now=now,
        )

        if status == AttendanceStatus.ABSENT:
            self._notify_absent(record)
        return record

    def mark_bulk_attendance(
        self,
        entries: Sequence[BulkEntry],
        *,
        class_id: str,
        section: str,
        day: Day,
        marked_by: Account,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> BulkMarkResult:
        """Mark each entry independently; a failing entry never aborts the rest."""
        results: list[AttendanceRecord] = []
        errors: list[dict[str, str]] = []

        for entry in entries:
            try:
                results.append(
                    self.mark_attendance(
                        student_id=entry.student_id,
                        class_id=class_id,
                        section=section,
                        day=day,
                        status=entry.status,
                        marked_by=marked_by,
                        remarks=entry.remarks,
                        late_minutes=entry.late_minutes,
                        context=context,
                        now=now,
                    )
                )
            except DomainError as e:
                errors.append({"studentId": entry.student_id, "error": e.message})

        if errors:
            logger.warning("Bulk attendance for class %s/%s: %s of %s failed", class_id, section, len(errors), len(entries))
        return BulkMarkResult(results=tuple(results), errors=tuple(errors))

    def update_attendance(
        self,
        record_id: str,
        *,
        marked_by: Account,
        status: Any = None,
        remarks: Optional[str] = None,
        late_minutes: Any = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> AttendanceRecord:
        before = self._attendance.get_by_id(record_id)
        if not before:
            raise NotFound("Attendance record not found")

        changes: Dict[str, Any] = {"marked_by": marked_by.account_id}
        new_status = require_enum(AttendanceStatus, status, "Status") if status else before.status
        changes["status"] = new_status
        if remarks is not None:
            changes["remarks"] = self._validate_details(remarks, None)[0]
        if late_minutes is not None:
            changes["late_minutes"] = self._validate_details(None, late_minutes)[1]

        now = now or now_local()
        if not self._attendance.update(record_id, changes, now=now):
            raise NotFound("Attendance record not found")
        record = self._attendance.get_by_id(record_id) or before

        self._audit.record(
            marked_by,
            EventType.UPDATE,
            "attendance",
            resource_id=record_id,
            changes={"status": {"from": before.status.value, "to": record.status.value}},
            context=context,
            now=now,
        )
        if record.status == AttendanceStatus.ABSENT and before.status != AttendanceStatus.ABSENT:
            self._notify_absent(record)
        return record

    # ---- read side --------------------------------------------------------

    def get_student_attendance(
        self,
        student_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[AttendanceRecord]:
        return self._attendance.find(student_id=student_id, start=start, end=end, limit=int(limit))

    def get_class_attendance(self, class_id: str, section: str, day: Day) -> list[ClassAttendanceRow]:
        """Roster of the class section with each student's record for the day."""
        section = (section or "").upper()
        d = to_day(day)
        by_student = {
            r.student_id: r for r in self._attendance.find(class_id=class_id, section=section, start=d, end=d)
        }
        profiles = sorted(
            self._students.list_profiles(class_id=class_id, section=section),
            key=lambda p: p.roll_number,
        )
        names = self._names([p.account_id for p in profiles])

        rows = []
        for p in profiles:
            r = by_student.get(p.account_id)
            rows.append(
                ClassAttendanceRow(
                    student_id=p.account_id,
                    full_name=names.get(p.account_id, ""),
                    roll_number=p.roll_number,
                    status=r.status if r else None,
                    record_id=r.record_id if r else None,
                    remarks=r.remarks if r else None,
                    late_minutes=r.late_minutes if r else None,
                )
            )
        return rows

    def get_attendance_stats(self, student_id: str) -> AttendanceStats:
        return build_stats(self._attendance.count_by_status(student_id=student_id))

    def get_monthly_report(self, class_id: str, section: str, month: int, year: int) -> list[StudentMonthRow]:
        start, end = month_bounds(month, year)
        section = (section or "").upper()
        records = self._attendance.find(class_id=class_id, section=section, start=start, end=end, newest_first=False)

        grouped: "OrderedDict[str, list[AttendanceRecord]]" = OrderedDict()
        for r in records:
            grouped.setdefault(r.student_id, []).append(r)

        names = self._names(list(grouped))
        rolls = {p.account_id: p.roll_number for p in self._students.list_profiles(account_ids=list(grouped))}

        report = [
            StudentMonthRow(
                student_id=student_id,
                full_name=names.get(student_id, ""),
                roll_number=rolls.get(student_id),
                stats=build_stats(_count(rows)),
                days=tuple(
                    {
                        "date": r.day,
                        "status": r.status,
                        "remarks": r.remarks,
                        "lateMinutes": r.late_minutes,
                    }
                    for r in rows
                ),
            )
            for student_id, rows in grouped.items()
        ]
        report.sort(key=lambda row: (row.roll_number is None, row.roll_number or 0))
        return report

    def get_academic_year_report(self, student_id: str, academic_year: str) -> dict[str, Any]:
        """April 1 to March 31 of the given 'YYYY-YYYY' year."""
        start, end = academic_year_bounds(academic_year)
        records = self._attendance.find(student_id=student_id, start=start, end=end)
        return {
            "academicYear": academic_year,
            "startDate": start,
            "endDate": end,
            "stats": build_stats(_count(records)),
            "records": list(records),
        }

    def get_student_monthly_breakdown(
        self,
        student_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[dict[str, Any]]:
        records = self._attendance.find(student_id=student_id, start=start, end=end)
        per_month: "OrderedDict[tuple[int, int], list[AttendanceRecord]]" = OrderedDict()
        for r in records:
            per_month.setdefault((r.day.year, r.day.month), []).append(r)
        return [
            {"year": year, "month": month, "stats": build_stats(_count(rows))}
            for (year, month), rows in per_month.items()
        ]

    def get_date_range_report(
        self,
        *,
        start: date,
        end: date,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        if end < start:
            raise ValidationError("End date cannot be before start date")
        records = self._attendance.find(
            class_id=class_id,
            section=section.upper() if section else None,
            start=start,
            end=end,
            newest_first=False,
        )

        per_day: "OrderedDict[date, Dict[AttendanceStatus, int]]" = OrderedDict()
        for r in records:
            per_day.setdefault(r.day, {s: 0 for s in AttendanceStatus})[r.status] += 1

        rows = []
        for d, counts in per_day.items():
            stats = build_stats(counts)
            rows.append({
                "date": d,
                "present": stats.present_days,
                "absent": stats.absent_days,
                "late": stats.late_days,
                "leave": stats.leave_days,
                "total": stats.total_days,
                "attendancePercentage": stats.attendance_percentage,
            })
        return rows

    def get_today_summary(self, *, today: Optional[date] = None) -> dict[str, int]:
        d = today or now_local().date()
        counts = self._attendance.count_by_status(start=d, end=d)
        summary = {s.value: int(counts.get(s, 0)) for s in AttendanceStatus}
        summary["total"] = sum(summary.values())
        return summary

    def _names(self, account_ids: Sequence[str]) -> dict[str, str]:
        names = {}
        for account_id in account_ids:
            account = self._accounts.get_by_id(account_id)
            if account:
                names[account_id] = account.full_name
        return names
