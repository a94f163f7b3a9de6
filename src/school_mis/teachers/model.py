from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import EmploymentType


@dataclass(frozen=True)
class AssignedClass:
    class_id: str
    section: str
    subject: str


@dataclass(frozen=True)
class TeacherProfile:
    """Teacher extension record, owned by the account with the same id."""

    account_id: str
    teacher_code: str
    qualification: str
    employment_type: EmploymentType
    experience: int
    subjects: tuple[str, ...] = ()
    assigned_classes: tuple[AssignedClass, ...] = field(default_factory=tuple)
    joining_date: Optional[date] = None

    def is_assigned(self, class_id: str, section: str) -> bool:
        return any(a.class_id == class_id and a.section == section for a in self.assigned_classes)
