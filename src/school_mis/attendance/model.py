from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one student's status for one calendar day.

    (student_id, day) is unique; re-marking the same day corrects this record.
    """

    record_id: str
    student_id: str
    class_id: str
    section: str
    day: date
    status: AttendanceStatus
    marked_by: str
    remarks: Optional[str] = None
    late_minutes: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class UpsertOutcome:
    record: AttendanceRecord
    created: bool


@dataclass(frozen=True)
class BulkEntry:
    student_id: str
    status: Any
    remarks: Optional[str] = None
    late_minutes: Optional[int] = None


@dataclass(frozen=True)
class BulkMarkResult:
    results: tuple[AttendanceRecord, ...] = ()
    errors: tuple[dict[str, str], ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class AttendanceStats:
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    leave_days: int
    attendance_percentage: int


@dataclass(frozen=True)
class ClassAttendanceRow:
    """Read-model: a roster entry with that day's record, if any."""

    student_id: str
    full_name: str
    roll_number: int
    status: Optional[AttendanceStatus] = None
    record_id: Optional[str] = None
    remarks: Optional[str] = None
    late_minutes: Optional[int] = None


@dataclass(frozen=True)
class StudentMonthRow:
    student_id: str
    full_name: str
    roll_number: Optional[int]
    stats: AttendanceStats
    days: tuple[dict[str, Any], ...] = field(default_factory=tuple)
