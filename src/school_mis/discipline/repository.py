from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import DisciplineRecord, NewDisciplineRecord


class DisciplineRepository(Protocol):
    def create(self, record: NewDisciplineRecord, *, now: datetime) -> str:
        raise NotImplementedError

    def get(self, record_id: str) -> Optional[DisciplineRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: str, *, limit: int = 50) -> Sequence[DisciplineRecord]:
        raise NotImplementedError

    def resolve(self, record_id: str, *, resolved_by: str, remarks: Optional[str], now: datetime) -> bool:
        raise NotImplementedError
