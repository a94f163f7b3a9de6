from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import StudentProfile


class StudentProfileRepository(Protocol):
    def get(self, account_id: str) -> Optional[StudentProfile]:
        raise NotImplementedError

    def create(self, profile: StudentProfile) -> None:
        raise NotImplementedError

    def update(self, account_id: str, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def find_by_roll(self, *, class_id: str, section: str, roll_number: int) -> Optional[StudentProfile]:
        raise NotImplementedError

    def list_profiles(
        self,
        *,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        account_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[StudentProfile]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
