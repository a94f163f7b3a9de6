from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Mapping, Optional, Sequence

from ..attendance.service import AttendanceService
from ..audit.model import RequestContext
from ..audit.service import AuditService
from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..common.validators import (
    require_email,
    require_enum,
    require_int_range,
    require_non_empty,
    require_phone,
)
from ..core.constants import MAX_ROLL_NUMBER, RECENT_ATTENDANCE_LIMIT, RECENT_DISCIPLINE_LIMIT
from ..core.enums import EventType, Gender, NotificationType, Priority, Role
from ..core.exceptions import Conflict, DuplicateEntry, NotFound
from ..discipline.repository import DisciplineRepository
from ..notifications.service import NotificationService
from ..users.model import Account
from ..users.repository import AccountRepository
from ..users.service import UserService
from .model import StudentProfile
from .repository import StudentProfileRepository

logger = logging.getLogger(__name__)

# request field -> profile attribute
_PROFILE_FIELDS = {
    "gender": "gender",
    "parentName": "parent_name",
    "parentEmail": "parent_email",
    "parentPhone": "parent_phone",
    "address": "address",
    "dateOfBirth": "date_of_birth",
}
_ACCOUNT_FIELDS = {"fullName": "full_name", "phone": "phone", "profilePicture": "profile_picture"}


def student_view(account: Account, profile: StudentProfile) -> dict[str, Any]:
    data = account.public()
    data.update(
        studentId=profile.student_code,
        classId=profile.class_id,
        section=profile.section,
        rollNumber=profile.roll_number,
        gender=profile.gender.value,
        dateOfBirth=profile.date_of_birth,
        parentName=profile.parent_name,
        parentEmail=profile.parent_email,
        parentPhone=profile.parent_phone,
        address=profile.address,
        admissionDate=profile.admission_date,
    )
    return data


class StudentService:
    """Use case: student enrolment and profile management."""

    def __init__(
        self,
        users: UserService,
        accounts: AccountRepository,
        students: StudentProfileRepository,
        classes: ClassRepository,
        attendance: AttendanceService,
        discipline: DisciplineRepository,
        notifications: NotificationService,
        audit: AuditService,
    ):
        self._users = users
        self._accounts = accounts
        self._students = students
        self._classes = classes
        self._attendance = attendance
        self._discipline = discipline
        self._notifications = notifications
        self._audit = audit

    def _active_headcount(self, class_id: str, section: str, *, exclude: Optional[str] = None) -> int:
        count = 0
        for p in self._students.list_profiles(class_id=class_id, section=section):
            if p.account_id == exclude:
                continue
            account = self._accounts.get_by_id(p.account_id)
            if account and account.is_active:
                count += 1
        return count

    def _check_placement(
        self,
        class_id: str,
        section: str,
        roll_number: int,
        *,
        student_id: Optional[str] = None,
    ) -> SchoolClass:
        school_class = self._classes.get_by_id(class_id)
        if not school_class:
            raise NotFound("Class not found")

        if not school_class.has_section(section):
            raise Conflict(f"Section {section} does not exist in this class")

        taken = self._students.find_by_roll(class_id=class_id, section=section, roll_number=roll_number)
        if taken and taken.account_id != student_id:
            raise DuplicateEntry(f"Roll number {roll_number} is already taken in {section}")

        if self._active_headcount(class_id, section, exclude=student_id) >= school_class.capacity:
            raise Conflict(f"Class capacity of {school_class.capacity} reached for section {section}")
        return school_class

    def _next_code(self, today: date) -> str:
        return f"STU{today.year % 100:02d}{self._students.count() + 1:04d}"

    def _get(self, student_id: str) -> tuple[Account, StudentProfile]:
        account = self._accounts.get_by_id(student_id)
        profile = self._students.get(student_id) if account else None
        if not account or account.role != Role.STUDENT or not profile:
            raise NotFound("Student not found")
        return account, profile

    def create_student(
        self,
        actor: Account,
        *,
        email: str,
        password: str,
        full_name: str,
        class_id: str,
        section: str,
        roll_number: Any,
        gender: Any,
        parent_name: str,
        parent_email: str,
        parent_phone: str,
        phone: Optional[str] = None,
        date_of_birth: Optional[date] = None,
        address: Optional[str] = None,
        admission_date: Optional[date] = None,
        context: Optional[RequestContext] = None,
        now: Optional[datetime] = None,
    ) -> dict[str, Any]:
        section = require_non_empty(section, "Section").upper()
        roll = require_int_range(roll_number, "Roll number", 1, MAX_ROLL_NUMBER)
        gender_value = require_enum(Gender, gender, "Gender")
        parent_name = require_non_empty(parent_name, "Parent name")
        parent_email = require_email(parent_email, "Parent email")
        parent_phone = require_phone(parent_phone, "Parent phone")

        self._check_placement(class_id, section, roll)

        now = now or now_local()
        account = self._users.create_account(
            email=email,
            password=password,
            role=Role.STUDENT,
            full_name=full_name,
            phone=phone,
            now=now,
        )
        try:
            profile = StudentProfile(
                account_id=account.account_id,
                student_code=self._next_code(now.date()),
                class_id=class_id,
                section=section,
                roll_number=roll,
                gender=gender_value,
                parent_name=parent_name,
                parent_email=parent_email,
                parent_phone=parent_phone,
                date_of_birth=date_of_birth,
                address=address,
                admission_date=admission_date or now.date(),
            )
            self._students.create(profile)
        except Exception:
            self._users.discard_account(account.account_id)
            raise

        view = student_view(account, profile)
        self._audit.record(
            actor,
            EventType.CREATE,
            "student",
            resource_id=account.account_id,
            changes={k: v for k, v in view.items() if k not in ("lastLogin", "lastActive")},
            context=context,
            now=now,
        )
        self._notifications.notify(
            account.account_id,
            NotificationType.SYSTEM,
            "Welcome to School MIS",
            f"Welcome {account.full_name}! Your student account has been created.",
            priority=Priority.HIGH,
            now=now,
        )
        logger.info("Student %s enrolled in class %s/%s", profile.student_code, class_id, section)
        return view

    def update_student(
        self,
        actor: Account,
        student_id: str,
        changes: Mapping[str, Any],
        *,
        context: Optional[RequestContext] = None,
    ) -> dict[str, Any]:
        """Edit contact/profile details. Class placement changes go through transfer."""
        account, profile = self._get(student_id)
        before = student_view(account, profile)

        account_changes = {attr: changes[key] for key, attr in _ACCOUNT_FIELDS.items() if key in changes}
        if account_changes.get("phone"):
            account_changes["phone"] = require_phone(account_changes["phone"])
        if "full_name" in account_changes:
            account_changes["full_name"] = require_non_empty(account_changes["full_name"], "Full name")

        profile_changes = {attr: changes[key] for key, attr in _PROFILE_FIELDS.items() if key in changes}
        if "gender" in profile_changes:
            profile_changes["gender"] = require_enum(Gender, profile_changes["gender"], "Gender")
        if "parent_email" in profile_changes:
            profile_changes["parent_email"] = require_email(profile_changes["parent_email"], "Parent email")
        if "parent_phone" in profile_changes:
            profile_changes["parent_phone"] = require_phone(profile_changes["parent_phone"], "Parent phone")

        if account_changes:
            self._accounts.update_details(account.account_id, **account_changes)
        if profile_changes:
            self._students.update(account.account_id, profile_changes)

        account, profile = self._get(student_id)
        after = student_view(account, profile)
        self._audit.record(
            actor,
            EventType.UPDATE,
            "student",
            resource_id=student_id,
            changes={"before": before, "after": after},
            context=context,
        )
        return after

    def deactivate_student(self, actor: Account, student_id: str, *, context: Optional[RequestContext] = None) -> None:
        account, _ = self._get(student_id)
        self._accounts.set_active(account.account_id, is_active=False)
        self._audit.record(actor, EventType.DELETE, "student", resource_id=student_id, context=context)
        self._notifications.notify(
            account.account_id,
            NotificationType.SYSTEM,
            "Account Deactivated",
            "Your account has been deactivated. Please contact administration.",
            priority=Priority.HIGH,
        )

    def transfer_student(
        self,
        actor: Account,
        student_id: str,
        *,
        class_id: str,
        section: str,
        roll_number: Any,
        context: Optional[RequestContext] = None,
    ) -> dict[str, Any]:
        account, profile = self._get(student_id)
        section = require_non_empty(section, "Section").upper()
        roll = require_int_range(roll_number, "Roll number", 1, MAX_ROLL_NUMBER)

        new_class = self._check_placement(class_id, section, roll, student_id=student_id)

        old = {"classId": profile.class_id, "section": profile.section, "rollNumber": profile.roll_number}
        self._students.update(student_id, {"class_id": class_id, "section": section, "roll_number": roll})
        self._audit.record(
            actor,
            EventType.UPDATE,
            "student",
            resource_id=student_id,
            changes={"before": old, "after": {"classId": class_id, "section": section, "rollNumber": roll}},
            context=context,
        )
        self._notifications.notify(
            student_id,
            NotificationType.ACADEMIC,
            "Class Transfer",
            f"You have been transferred to Class {new_class.class_name} - Section {section}",
            priority=Priority.HIGH,
        )
        return student_view(account, replace(profile, class_id=class_id, section=section, roll_number=roll))

    def get_student(self, student_id: str) -> dict[str, Any]:
        return student_view(*self._get(student_id))

    def list_students(
        self,
        *,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        gender: Optional[str] = None,
        query: Optional[str] = None,
        active_only: bool = True,
    ) -> list[dict[str, Any]]:
        """Students filtered by placement/gender; ``query`` matches name, email or student id."""
        profiles = self._students.list_profiles(class_id=class_id, section=section.upper() if section else None)
        wanted_gender = require_enum(Gender, gender, "Gender") if gender else None
        needle = (query or "").strip().lower()

        rows = []
        for p in profiles:
            if wanted_gender and p.gender != wanted_gender:
                continue
            account = self._accounts.get_by_id(p.account_id)
            if not account or (active_only and not account.is_active):
                continue
            if needle and not any(
                needle in value.lower() for value in (account.full_name, account.email, p.student_code)
            ):
                continue
            rows.append(student_view(account, p))
        return rows

    def class_roster(self, class_id: str, section: str) -> list[dict[str, Any]]:
        if not self._classes.get_by_id(class_id):
            raise NotFound("Class not found")
        return self.list_students(class_id=class_id, section=section)

    def get_student_details(self, student_id: str) -> dict[str, Any]:
        account, profile = self._get(student_id)
        return {
            "student": student_view(account, profile),
            "attendanceStats": self._attendance.get_attendance_stats(student_id),
            "recentAttendance": list(
                self._attendance.get_student_attendance(student_id, limit=RECENT_ATTENDANCE_LIMIT)
            ),
            "disciplineRecords": list(self._discipline.list_for_student(student_id, limit=RECENT_DISCIPLINE_LIMIT)),
            "notifications": list(self._notifications.list_for(student_id, limit=20)),
        }

    def attendance_report(
        self,
        student_id: str,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[dict[str, Any]]:
        """Month-by-month attendance stats, newest month first."""
        self._get(student_id)
        return self._attendance.get_student_monthly_breakdown(student_id, start=start, end=end)
