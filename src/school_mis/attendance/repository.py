from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord, UpsertOutcome


class AttendanceRepository(Protocol):
    def upsert(
        self,
        *,
        student_id: str,
        class_id: str,
        section: str,
        day: date,
        status: AttendanceStatus,
        marked_by: str,
        remarks: Optional[str],
        late_minutes: Optional[int],
        now: datetime,
    ) -> UpsertOutcome:
        """Create or correct the single record for (student_id, day) atomically."""

        raise NotImplementedError

    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def update(self, record_id: str, changes: Dict[str, Any], *, now: datetime) -> bool:
        raise NotImplementedError

    def find(
        self,
        *,
        student_id: Optional[str] = None,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_by_status(
        self,
        *,
        student_id: Optional[str] = None,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Dict[AttendanceStatus, int]:
        raise NotImplementedError
