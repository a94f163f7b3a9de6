from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import Gender


@dataclass(frozen=True)
class StudentProfile:
    """Student extension record, owned by the account with the same id."""

    account_id: str
    student_code: str
    class_id: str
    section: str
    roll_number: int
    gender: Gender
    parent_name: str
    parent_email: str
    parent_phone: str
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    admission_date: Optional[date] = None
