from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..common.datetime_utils import parse_academic_year
from ..common.validators import require_int_range, require_non_empty
from ..core.constants import (
    CLASS_NAMES,
    DEFAULT_CLASS_CAPACITY,
    MAX_CLASS_CAPACITY,
    MAX_SECTIONS,
    MIN_CLASS_CAPACITY,
)
from ..core.enums import EventType, Role
from ..core.exceptions import DuplicateEntry, NotFound, ValidationError
from ..students.repository import StudentProfileRepository
from ..teachers.model import AssignedClass
from ..teachers.repository import TeacherProfileRepository
from ..users.model import Account
from ..users.repository import AccountRepository
from .model import ClassSubject, SchoolClass
from .repository import ClassRepository

logger = logging.getLogger(__name__)


def _class_name(value: Any) -> str:
    name = require_non_empty(str(value) if value is not None else None, "Class name")
    if name not in CLASS_NAMES:
        raise ValidationError(f"Class name must be one of: {', '.join(CLASS_NAMES)}")
    return name


def _sections(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    sections = []
    for s in value or ():
        s = str(s).strip().upper()
        if s and s not in sections:
            sections.append(s)
    if not 1 <= len(sections) <= MAX_SECTIONS:
        raise ValidationError(f"A class must have between 1 and {MAX_SECTIONS} sections")
    return tuple(sections)


def _academic_year(value: Any) -> str:
    year = require_non_empty(value, "Academic year")
    parse_academic_year(year)
    return year


def class_view(school_class: SchoolClass, teacher: Optional[Account] = None) -> dict[str, Any]:
    return {
        "id": school_class.class_id,
        "className": school_class.class_name,
        "sections": list(school_class.sections),
        "academicYear": school_class.academic_year,
        "capacity": school_class.capacity,
        "roomNumber": school_class.room_number,
        "classTeacher": {
            "id": school_class.class_teacher_id,
            "fullName": teacher.full_name if teacher else None,
            "email": teacher.email if teacher else None,
        },
        "subjects": [{"name": s.name, "teacherId": s.teacher_id} for s in school_class.subjects],
    }


class ClassService:
    """Use case: class catalogue per academic year, with teacher assignment upkeep."""

    def __init__(
        self,
        classes: ClassRepository,
        accounts: AccountRepository,
        teachers: TeacherProfileRepository,
        students: StudentProfileRepository,
        audit: AuditService,
    ):
        self._classes = classes
        self._accounts = accounts
        self._teachers = teachers
        self._students = students
        self._audit = audit

    def _require_teacher(self, teacher_id: str) -> Account:
        account = self._accounts.get_by_id(teacher_id)
        if not account or account.role != Role.TEACHER or not self._teachers.get(teacher_id):
            raise NotFound("Teacher not found")
        return account

    def _subjects(self, value: Optional[Iterable[Mapping[str, Any]]]) -> tuple[ClassSubject, ...]:
        subjects = []
        for s in value or ():
            name = require_non_empty(s.get("name"), "Subject name")
            teacher_id = require_non_empty(s.get("teacherId"), "Subject teacher")
            self._require_teacher(teacher_id)
            subjects.append(ClassSubject(name=name, teacher_id=teacher_id))
        return tuple(subjects)

    def _get(self, class_id: str) -> SchoolClass:
        school_class = self._classes.get_by_id(class_id)
        if not school_class:
            raise NotFound("Class not found")
        return school_class

    def create_class(
        self,
        actor: Account,
        *,
        class_name: Any,
        sections: Any,
        class_teacher_id: str,
        academic_year: str,
        capacity: Any = DEFAULT_CLASS_CAPACITY,
        subjects: Optional[Iterable[Mapping[str, Any]]] = None,
        room_number: Optional[str] = None,
        context: Optional[RequestContext] = None,
    ) -> dict[str, Any]:
        name = _class_name(class_name)
        year = _academic_year(academic_year)
        section_list = _sections(sections)
        size = require_int_range(capacity, "Capacity", MIN_CLASS_CAPACITY, MAX_CLASS_CAPACITY)

        if self._classes.find_by_name(class_name=name, academic_year=year):
            raise DuplicateEntry(f"Class {name} already exists for academic year {year}")

        teacher = self._require_teacher(class_teacher_id)
        subject_list = self._subjects(subjects)

        class_id = self._classes.create(
            SchoolClass(
                class_id="",
                class_name=name,
                sections=section_list,
                class_teacher_id=teacher.account_id,
                academic_year=year,
                capacity=size,
                subjects=subject_list,
                room_number=room_number,
            )
        )

        # the class teacher is assigned to the first section
        self._teachers.add_assignment(
            teacher.account_id,
            AssignedClass(
                class_id=class_id,
                section=section_list[0],
                subject=subject_list[0].name if subject_list else "General",
            ),
        )

        school_class = self._get(class_id)
        self._audit.record(
            actor,
            EventType.CREATE,
            "class",
            resource_id=class_id,
            changes={"className": name, "academicYear": year, "sections": list(section_list)},
            context=context,
        )
        logger.info("Class %s (%s) created", name, year)
        return class_view(school_class, teacher)

    def list_classes(self, *, academic_year: Optional[str] = None) -> list[dict[str, Any]]:
        return [
            class_view(c, self._accounts.get_by_id(c.class_teacher_id))
            for c in self._classes.list_classes(academic_year=academic_year)
        ]

    def dropdown(self, *, academic_year: Optional[str] = None) -> list[dict[str, Any]]:
        return [
            {"id": c.class_id, "className": c.class_name, "sections": list(c.sections), "academicYear": c.academic_year}
            for c in self._classes.list_classes(academic_year=academic_year)
        ]

    def get_class(self, class_id: str) -> dict[str, Any]:
        school_class = self._get(class_id)
        return class_view(school_class, self._accounts.get_by_id(school_class.class_teacher_id))

    def update_class(
        self,
        actor: Account,
        class_id: str,
        changes: Mapping[str, Any],
        *,
        context: Optional[RequestContext] = None,
    ) -> dict[str, Any]:
        before = self._get(class_id)

        fields: dict[str, Any] = {}
        if "className" in changes:
            fields["class_name"] = _class_name(changes["className"])
        if "academicYear" in changes:
            fields["academic_year"] = _academic_year(changes["academicYear"])
        if "sections" in changes:
            fields["sections"] = _sections(changes["sections"])
        if "capacity" in changes:
            fields["capacity"] = require_int_range(changes["capacity"], "Capacity", MIN_CLASS_CAPACITY, MAX_CLASS_CAPACITY)
        if "roomNumber" in changes:
            fields["room_number"] = changes["roomNumber"] or None
        if "subjects" in changes:
            fields["subjects"] = self._subjects(changes["subjects"])
        if "classTeacherId" in changes:
            fields["class_teacher_id"] = self._require_teacher(changes["classTeacherId"]).account_id

        name = fields.get("class_name", before.class_name)
        year = fields.get("academic_year", before.academic_year)
        clash = self._classes.find_by_name(class_name=name, academic_year=year)
        if clash and clash.class_id != class_id:
            raise DuplicateEntry(f"Class {name} already exists for academic year {year}")

        if fields:
            self._classes.update(class_id, fields)
        after = self.get_class(class_id)
        self._audit.record(
            actor,
            EventType.UPDATE,
            "class",
            resource_id=class_id,
            changes={"before": class_view(before), "after": after},
            context=context,
        )
        return after

    def delete_class(self, actor: Account, class_id: str, *, context: Optional[RequestContext] = None) -> None:
        school_class = self._get(class_id)

        teacher_ids = {school_class.class_teacher_id} | {s.teacher_id for s in school_class.subjects}
        for teacher_id in teacher_ids:
            self._teachers.remove_assignments(teacher_id, class_id=class_id)

        self._classes.delete(class_id)
        self._audit.record(
            actor,
            EventType.DELETE,
            "class",
            resource_id=class_id,
            changes={"className": school_class.class_name, "academicYear": school_class.academic_year},
            context=context,
        )

    def class_stats(self, class_id: str) -> dict[str, Any]:
        school_class = self._get(class_id)
        by_section = {s: 0 for s in school_class.sections}
        for p in self._students.list_profiles(class_id=class_id):
            account = self._accounts.get_by_id(p.account_id)
            if account and account.is_active:
                by_section[p.section] = by_section.get(p.section, 0) + 1
        return {
            "classId": class_id,
            "className": school_class.class_name,
            "capacity": school_class.capacity,
            "totalStudents": sum(by_section.values()),
            "studentsBySection": by_section,
        }
