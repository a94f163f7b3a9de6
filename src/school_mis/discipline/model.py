from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import DisciplineType, SeverityLevel


@dataclass(frozen=True)
class DisciplineRecord:
    record_id: str
    student_id: str
    teacher_id: str
    day: date
    type: DisciplineType
    description: str
    severity: SeverityLevel
    action_taken: Optional[str] = None
    remarks: Optional[str] = None
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class NewDisciplineRecord:
    student_id: str
    teacher_id: str
    day: date
    type: DisciplineType
    description: str
    severity: SeverityLevel
    action_taken: Optional[str] = None
    remarks: Optional[str] = None
