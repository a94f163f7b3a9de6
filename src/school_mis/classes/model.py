from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ClassSubject:
    name: str
    teacher_id: str


@dataclass(frozen=True)
class SchoolClass:
    class_id: str
    class_name: str
    sections: tuple[str, ...]
    class_teacher_id: str
    academic_year: str
    capacity: int = 40
    subjects: tuple[ClassSubject, ...] = ()
    room_number: Optional[str] = None

    @property
    def label(self) -> str:
        return f"Class {self.class_name} ({self.academic_year})"

    def has_section(self, section: str) -> bool:
        return section in self.sections
