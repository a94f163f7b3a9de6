from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import SchoolClass


class ClassRepository(Protocol):
    def get_by_id(self, class_id: str) -> Optional[SchoolClass]:
        raise NotImplementedError

    def find_by_name(self, *, class_name: str, academic_year: str) -> Optional[SchoolClass]:
        raise NotImplementedError

    def create(self, school_class: SchoolClass) -> str:
        """Insert and return the new id (``school_class.class_id`` is ignored)."""
        raise NotImplementedError

    def update(self, class_id: str, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, class_id: str) -> bool:
        raise NotImplementedError

    def list_classes(self, *, academic_year: Optional[str] = None) -> Sequence[SchoolClass]:
        raise NotImplementedError
