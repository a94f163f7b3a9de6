from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_int_range, require_non_empty, require_phone
from ..core.constants import MAX_TEACHER_EXPERIENCE
from ..core.enums import EmploymentType, EventType, Role
from ..core.exceptions import Conflict, DuplicateEntry, NotFound
from ..users.model import Account
from ..users.repository import AccountRepository
from ..users.service import UserService
from .model import AssignedClass, TeacherProfile
from .repository import TeacherProfileRepository


def teacher_view(account: Account, profile: TeacherProfile) -> dict[str, Any]:
    data = account.public()
    data.update(
        teacherId=profile.teacher_code,
        qualification=profile.qualification,
        employmentType=profile.employment_type.value,
        experience=profile.experience,
        subjects=list(profile.subjects),
        assignedClasses=[
            {"classId": a.class_id, "section": a.section, "subject": a.subject} for a in profile.assigned_classes
        ],
        joiningDate=profile.joining_date,
    )
    return data


def _subjects(value: Optional[Iterable[str]]) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(s.strip() for s in value if s and s.strip())


class TeacherService:
    def __init__(
        self,
        users: UserService,
        accounts: AccountRepository,
        teachers: TeacherProfileRepository,
        classes: ClassRepository,
        audit: AuditService,
    ):
        self._users = users
        self._accounts = accounts
        self._teachers = teachers
        self._classes = classes
        self._audit = audit

    def _get(self, teacher_id: str) -> tuple[Account, TeacherProfile]:
        account = self._accounts.get_by_id(teacher_id)
        profile = self._teachers.get(teacher_id) if account else None
        if not account or account.role != Role.TEACHER or not profile:
            raise NotFound("Teacher not found")
        return account, profile

    def create_teacher(
        self,
        actor: Account,
        *,
        email: str,
        password: str,
        full_name: str,
        qualification: str,
        employment_type: Any = EmploymentType.PERMANENT,
        experience: Any = 0,
        subjects: Optional[Iterable[str]] = None,
        phone: Optional[str] = None,
        joining_date: Optional[date] = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        qualification = require_non_empty(qualification, "Qualification")
        kind = require_enum(EmploymentType, employment_type, "Employment type")
        years = require_int_range(experience, "Experience", 0, MAX_TEACHER_EXPERIENCE)

        now = now or now_local()
        account = self._users.create_account(
            email=email,
            password=password,
            role=Role.TEACHER,
            full_name=full_name,
            phone=phone,
            now=now,
        )
        try:
            profile = TeacherProfile(
                account_id=account.account_id,
                teacher_code=f"TCH{self._teachers.count() + 1:04d}",
                qualification=qualification,
                employment_type=kind,
                experience=years,
                subjects=_subjects(subjects),
                joining_date=joining_date or now.date(),
            )
            self._teachers.create(profile)
        except Exception:
            self._users.discard_account(account.account_id)
            raise

        self._audit.record(
            actor,
            EventType.CREATE,
            "teacher",
            resource_id=account.account_id,
            changes={"email": account.email, "teacherId": profile.teacher_code},
            context=context,
            now=now,
        )
        return teacher_view(account, profile)

    def list_teachers(self, *, active_only: bool = True) -> list[dict[str, Any]]:
        accounts = self._accounts.list_accounts(role=Role.TEACHER, active_only=active_only)
        profiles = {p.account_id: p for p in self._teachers.list_profiles(account_ids=[a.account_id for a in accounts])}
        return [teacher_view(a, profiles[a.account_id]) for a in accounts if a.account_id in profiles]

    def get_teacher(self, teacher_id: str) -> dict[str, Any]:
        return teacher_view(*self._get(teacher_id))

    def update_teacher(
        self,
        actor: Account,
        teacher_id: str,
        changes: Mapping[str, Any],
        *,
        context: Optional[RequestContext] = None,
    ) -> dict[str, Any]:
        """Email, role and password are not editable here."""
        account, profile = self._get(teacher_id)
        before = teacher_view(account, profile)

        if "fullName" in changes or "phone" in changes:
            self._accounts.update_details(
                account.account_id,
                full_name=require_non_empty(changes["fullName"], "Full name") if "fullName" in changes else None,
                phone=require_phone(changes["phone"]) if changes.get("phone") else None,
            )

        profile_changes: dict[str, Any] = {}
        if "qualification" in changes:
            profile_changes["qualification"] = require_non_empty(changes["qualification"], "Qualification")
        if "employmentType" in changes:
            profile_changes["employment_type"] = require_enum(EmploymentType, changes["employmentType"], "Employment type")
        if "experience" in changes:
            profile_changes["experience"] = require_int_range(changes["experience"], "Experience", 0, MAX_TEACHER_EXPERIENCE)
        if "subjects" in changes:
            profile_changes["subjects"] = _subjects(changes["subjects"])
        if profile_changes:
            self._teachers.update(account.account_id, profile_changes)

        after = teacher_view(*self._get(teacher_id))
        self._audit.record(
            actor,
            EventType.UPDATE,
            "teacher",
            resource_id=teacher_id,
            changes={"before": before, "after": after},
            context=context,
        )
        return after

    def deactivate_teacher(self, actor: Account, teacher_id: str, *, context: Optional[RequestContext] = None) -> None:
        account, _ = self._get(teacher_id)
        self._accounts.set_active(account.account_id, is_active=False)
        self._audit.record(actor, EventType.DELETE, "teacher", resource_id=teacher_id, context=context)

    def assigned_classes(self, teacher_id: str) -> list[dict[str, Any]]:
        _, profile = self._get(teacher_id)
        rows = []
        for a in profile.assigned_classes:
            school_class = self._classes.get_by_id(a.class_id)
            rows.append({
                "classId": a.class_id,
                "className": school_class.class_name if school_class else None,
                "academicYear": school_class.academic_year if school_class else None,
                "section": a.section,
                "subject": a.subject,
            })
        return rows

    def assign_class(
        self,
        actor: Account,
        teacher_id: str,
        *,
        class_id: str,
        section: str,
        subject: str,
        context: Optional[RequestContext] = None,
    ) -> list[dict[str, Any]]:
        section = require_non_empty(section, "Section").upper()
        subject = require_non_empty(subject, "Subject")

        school_class = self._classes.get_by_id(class_id)
        if not school_class:
            raise NotFound("Class not found")
        if not school_class.has_section(section):
            raise Conflict(f"Section {section} does not exist in this class")

        _, profile = self._get(teacher_id)
        if profile.is_assigned(class_id, section):
            raise DuplicateEntry("Teacher already assigned to this class and section")

        self._teachers.add_assignment(teacher_id, AssignedClass(class_id=class_id, section=section, subject=subject))
        self._audit.record(
            actor,
            EventType.UPDATE,
            "teacher",
            resource_id=teacher_id,
            changes={"assignClass": {"classId": class_id, "section": section, "subject": subject}},
            context=context,
        )
        return self.assigned_classes(teacher_id)

    def remove_class(
        self,
        actor: Account,
        teacher_id: str,
        *,
        class_id: str,
        section: str,
        context: Optional[RequestContext] = None,
    ) -> list[dict[str, Any]]:
        self._get(teacher_id)
        self._teachers.remove_assignments(teacher_id, class_id=class_id, section=(section or "").upper())
        self._audit.record(
            actor,
            EventType.UPDATE,
            "teacher",
            resource_id=teacher_id,
            changes={"removeClass": {"classId": class_id, "section": section}},
            context=context,
        )
        return self.assigned_classes(teacher_id)
