from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import AssignedClass, TeacherProfile


class TeacherProfileRepository(Protocol):
    def get(self, account_id: str) -> Optional[TeacherProfile]:
        raise NotImplementedError

    def create(self, profile: TeacherProfile) -> None:
        raise NotImplementedError

    def update(self, account_id: str, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def add_assignment(self, account_id: str, assignment: AssignedClass) -> bool:
        raise NotImplementedError

    def remove_assignments(self, account_id: str, *, class_id: str, section: Optional[str] = None) -> bool:
        """Drop assignments for a class (one section, or all when section is None)."""
        raise NotImplementedError

    def list_profiles(self, *, account_ids: Optional[Sequence[str]] = None) -> Sequence[TeacherProfile]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
