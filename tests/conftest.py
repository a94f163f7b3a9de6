from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytest
from werkzeug.security import generate_password_hash

from school_mis.attendance.model import AttendanceRecord, UpsertOutcome
from school_mis.audit.model import AuditEvent
from school_mis.auth.sessions import InMemorySessionStore
from school_mis.auth.tokens import TokenConfig
from school_mis.classes.model import SchoolClass
from school_mis.container import Container, assemble
from school_mis.core.enums import AttendanceStatus, EmploymentType, Gender, Role
from school_mis.discipline.model import DisciplineRecord
from school_mis.notifications.model import Notification
from school_mis.students.model import StudentProfile
from school_mis.teachers.model import TeacherProfile
from school_mis.users.model import Account

PASSWORD = "Passw0rd!"

_ids = itertools.count(1)


def _next_id() -> str:
    return f"{next(_ids):024x}"


class InMemoryAccounts:
    def __init__(self):
        self.items: dict[str, Account] = {}

    def get_by_id(self, account_id):
        return self.items.get(account_id)

    def get_by_email(self, email):
        email = (email or "").strip().lower()
        return next((a for a in self.items.values() if a.email == email), None)

    def get_by_reset_token(self, token_hash, *, now):
        for a in self.items.values():
            if a.password_reset_token == token_hash and a.password_reset_expires and a.password_reset_expires > now:
                return a
        return None

    def create(self, account, *, now):
        account_id = _next_id()
        self.items[account_id] = Account(
            account_id=account_id,
            email=account.email.strip().lower(),
            password_hash=account.password_hash,
            role=account.role,
            full_name=account.full_name,
            phone=account.phone,
            password_changed_at=now,
            created_at=now,
        )
        return account_id

    def _patch(self, account_id, **changes):
        if account_id not in self.items:
            return False
        self.items[account_id] = replace(self.items[account_id], **changes)
        return True

    def delete(self, account_id):
        return self.items.pop(account_id, None) is not None

    def increment_failed_logins(self, account_id, *, now):
        account = self.items.get(account_id)
        if account is None:
            return 0
        if account.lock_until is not None and account.lock_until <= now:
            attempts, lock_until = 1, None
        else:
            attempts, lock_until = account.login_attempts + 1, account.lock_until
        self._patch(account_id, login_attempts=attempts, lock_until=lock_until)
        return attempts

    def lock(self, account_id, *, until):
        self._patch(account_id, lock_until=until)

    def record_successful_login(self, account_id, *, now):
        self._patch(account_id, login_attempts=0, lock_until=None, last_login=now, last_active=now)

    def touch_last_active(self, account_id, *, now):
        self._patch(account_id, last_active=now)

    def set_password(self, account_id, *, password_hash, now):
        self._patch(
            account_id,
            password_hash=password_hash,
            password_changed_at=now,
            password_reset_token=None,
            password_reset_expires=None,
        )

    def set_reset_token(self, account_id, *, token_hash, expires):
        self._patch(account_id, password_reset_token=token_hash, password_reset_expires=expires)

    def set_active(self, account_id, *, is_active):
        return self._patch(account_id, is_active=is_active)

    def update_details(self, account_id, *, full_name=None, phone=None, profile_picture=None):
        changes = {
            k: v
            for k, v in {"full_name": full_name, "phone": phone, "profile_picture": profile_picture}.items()
            if v is not None
        }
        return self._patch(account_id, **changes)

    def list_accounts(self, *, role=None, active_only=False, limit=200):
        rows = [
            a for a in self.items.values()
            if (role is None or a.role == role) and (not active_only or a.is_active)
        ]
        return sorted(rows, key=lambda a: a.full_name)[:limit]


class InMemoryStudents:
    def __init__(self):
        self.items: dict[str, StudentProfile] = {}

    def get(self, account_id):
        return self.items.get(account_id)

    def create(self, profile):
        self.items[profile.account_id] = profile

    def update(self, account_id, changes):
        if account_id not in self.items:
            return False
        self.items[account_id] = replace(self.items[account_id], **changes)
        return True

    def find_by_roll(self, *, class_id, section, roll_number):
        return next(
            (
                p for p in self.items.values()
                if p.class_id == class_id and p.section == section and p.roll_number == int(roll_number)
            ),
            None,
        )

    def list_profiles(self, *, class_id=None, section=None, account_ids=None):
        rows = [
            p for p in self.items.values()
            if (class_id is None or p.class_id == class_id)
            and (section is None or p.section == section)
            and (account_ids is None or p.account_id in account_ids)
        ]
        return sorted(rows, key=lambda p: (p.class_id, p.section, p.roll_number))

    def count(self):
        return len(self.items)


class InMemoryTeachers:
    def __init__(self):
        self.items: dict[str, TeacherProfile] = {}

    def get(self, account_id):
        return self.items.get(account_id)

    def create(self, profile):
        self.items[profile.account_id] = profile

    def update(self, account_id, changes):
        if account_id not in self.items:
            return False
        self.items[account_id] = replace(self.items[account_id], **changes)
        return True

    def add_assignment(self, account_id, assignment):
        p = self.items.get(account_id)
        if not p:
            return False
        self.items[account_id] = replace(p, assigned_classes=p.assigned_classes + (assignment,))
        return True

    def remove_assignments(self, account_id, *, class_id, section=None):
        p = self.items.get(account_id)
        if not p:
            return False
        kept = tuple(
            a for a in p.assigned_classes
            if not (a.class_id == class_id and (section is None or a.section == section))
        )
        self.items[account_id] = replace(p, assigned_classes=kept)
        return True

    def list_profiles(self, *, account_ids=None):
        return [p for p in self.items.values() if account_ids is None or p.account_id in account_ids]

    def count(self):
        return len(self.items)


class InMemoryClasses:
    def __init__(self):
        self.items: dict[str, SchoolClass] = {}

    def get_by_id(self, class_id):
        return self.items.get(class_id)

    def find_by_name(self, *, class_name, academic_year):
        return next(
            (c for c in self.items.values() if c.class_name == class_name and c.academic_year == academic_year),
            None,
        )

    def create(self, school_class):
        class_id = _next_id()
        self.items[class_id] = replace(school_class, class_id=class_id)
        return class_id

    def update(self, class_id, changes):
        if class_id not in self.items:
            return False
        self.items[class_id] = replace(self.items[class_id], **changes)
        return True

    def delete(self, class_id):
        return self.items.pop(class_id, None) is not None

    def list_classes(self, *, academic_year=None):
        return [c for c in self.items.values() if academic_year is None or c.academic_year == academic_year]


class InMemoryAttendance:
    """Keyed by (student_id, day) like the unique index."""

    def __init__(self):
        self.items: dict[tuple[str, date], AttendanceRecord] = {}

    def upsert(self, *, student_id, class_id, section, day, status, marked_by, remarks, late_minutes, now):
        key = (student_id, day)
        existing = self.items.get(key)
        fields = dict(
            class_id=class_id,
            section=section,
            status=status,
            marked_by=marked_by,
            remarks=remarks,
            late_minutes=late_minutes,
            updated_at=now,
        )
        if existing:
            self.items[key] = replace(existing, **fields)
            return UpsertOutcome(record=self.items[key], created=False)
        self.items[key] = AttendanceRecord(
            record_id=_next_id(), student_id=student_id, day=day, created_at=now, **fields
        )
        return UpsertOutcome(record=self.items[key], created=True)

    def get_by_id(self, record_id):
        return next((r for r in self.items.values() if r.record_id == record_id), None)

    def update(self, record_id, changes, *, now):
        for key, r in self.items.items():
            if r.record_id == record_id:
                self.items[key] = replace(r, updated_at=now, **changes)
                return True
        return False

    def _match(self, r, *, student_id, class_id, section, start, end):
        return (
            (student_id is None or r.student_id == student_id)
            and (class_id is None or r.class_id == class_id)
            and (section is None or r.section == section)
            and (start is None or r.day >= start)
            and (end is None or r.day <= end)
        )

    def find(self, *, student_id=None, class_id=None, section=None, start=None, end=None, limit=None, newest_first=True):
        rows = [
            r for r in self.items.values()
            if self._match(r, student_id=student_id, class_id=class_id, section=section, start=start, end=end)
        ]
        rows.sort(key=lambda r: r.day, reverse=newest_first)
        return rows[:limit] if limit else rows

    def count_by_status(self, *, student_id=None, class_id=None, section=None, start=None, end=None):
        counts = {s: 0 for s in AttendanceStatus}
        for r in self.find(student_id=student_id, class_id=class_id, section=section, start=start, end=end):
            counts[r.status] += 1
        return counts


class InMemoryAudit:
    def __init__(self):
        self.events: list[AuditEvent] = []

    def append(self, event):
        event_id = _next_id()
        self.events.append(replace(event, event_id=event_id))
        return event_id

    def list_events(self, *, actor_id=None, event=None, resource=None, resource_id=None, limit=100):
        rows = [
            e for e in reversed(self.events)
            if (actor_id is None or e.actor_id == actor_id)
            and (event is None or e.event == event)
            and (resource is None or e.resource == resource)
            and (resource_id is None or e.resource_id == resource_id)
        ]
        return rows[:limit]


class InMemoryNotifications:
    def __init__(self):
        self.items: dict[str, Notification] = {}

    def create(self, *, recipient_id, type, title, message, priority, metadata, now):
        notification_id = _next_id()
        self.items[notification_id] = Notification(
            notification_id=notification_id,
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            created_at=now,
            priority=priority,
            metadata=dict(metadata or {}),
        )
        return notification_id

    def get(self, notification_id):
        return self.items.get(notification_id)

    def list_for_recipient(self, recipient_id, *, unread_only=False, limit=20):
        rows = [
            n for n in self.items.values()
            if n.recipient_id == recipient_id and (not unread_only or not n.read)
        ]
        return sorted(rows, key=lambda n: n.created_at, reverse=True)[:limit]

    def mark_read(self, notification_id, *, now):
        n = self.items.get(notification_id)
        if not n:
            return False
        self.items[notification_id] = replace(n, read=True, read_at=now)
        return True


class InMemoryDiscipline:
    def __init__(self):
        self.items: dict[str, DisciplineRecord] = {}

    def create(self, record, *, now):
        record_id = _next_id()
        self.items[record_id] = DisciplineRecord(
            record_id=record_id,
            student_id=record.student_id,
            teacher_id=record.teacher_id,
            day=record.day,
            type=record.type,
            description=record.description,
            severity=record.severity,
            action_taken=record.action_taken,
            remarks=record.remarks,
            created_at=now,
        )
        return record_id

    def get(self, record_id):
        return self.items.get(record_id)

    def list_for_student(self, student_id, *, limit=50):
        rows = [r for r in self.items.values() if r.student_id == student_id]
        return sorted(rows, key=lambda r: r.day, reverse=True)[:limit]

    def resolve(self, record_id, *, resolved_by, remarks, now):
        r = self.items.get(record_id)
        if not r:
            return False
        self.items[record_id] = replace(
            r, resolved=True, resolved_at=now, resolved_by=resolved_by, remarks=remarks if remarks is not None else r.remarks
        )
        return True


@dataclass
class RecordingMailer:
    """Captures outbound mail; set ``fail_with`` to make every send raise."""

    absentee_alerts: list[dict[str, Any]] = field(default_factory=list)
    password_resets: list[tuple[str, str]] = field(default_factory=list)
    fail_with: Optional[Exception] = None

    def send_absentee_alert(self, parent_email, student_name, day, class_name, section):
        if self.fail_with:
            raise self.fail_with
        self.absentee_alerts.append({
            "parent_email": parent_email,
            "student_name": student_name,
            "day": day,
            "class_name": class_name,
            "section": section,
        })
        return True

    def send_password_reset(self, email, token):
        if self.fail_with:
            raise self.fail_with
        self.password_resets.append((email, token))
        return True


@dataclass
class World:
    container: Container
    accounts: InMemoryAccounts
    students: InMemoryStudents
    teachers: InMemoryTeachers
    classes: InMemoryClasses
    attendance: InMemoryAttendance
    audit: InMemoryAudit
    notifications: InMemoryNotifications
    discipline: InMemoryDiscipline
    sessions: InMemorySessionStore
    mailer: RecordingMailer

    def add_account(self, role: Role, email: str, *, full_name: str = "", password: str = PASSWORD,
                    is_active: bool = True) -> Account:
        account_id = _next_id()
        account = Account(
            account_id=account_id,
            email=email.lower(),
            password_hash=generate_password_hash(password),
            role=role,
            full_name=full_name or email.split("@")[0].title(),
            is_active=is_active,
        )
        self.accounts.items[account_id] = account
        return account

    def add_teacher(self, email: str = "teacher@school.test", **kwargs) -> Account:
        account = self.add_account(Role.TEACHER, email, **kwargs)
        self.teachers.create(
            TeacherProfile(
                account_id=account.account_id,
                teacher_code=f"TCH{self.teachers.count() + 1:04d}",
                qualification="M.Sc",
                employment_type=EmploymentType.PERMANENT,
                experience=5,
                subjects=("Maths",),
            )
        )
        return account

    def add_class(self, *, class_name: str = "5", sections=("A", "B"), capacity: int = 40,
                  teacher: Optional[Account] = None, academic_year: str = "2024-2025") -> SchoolClass:
        teacher = teacher or self.add_teacher(f"ct{len(self.classes.items)}@school.test")
        class_id = self.classes.create(
            SchoolClass(
                class_id="",
                class_name=class_name,
                sections=tuple(sections),
                class_teacher_id=teacher.account_id,
                academic_year=academic_year,
                capacity=capacity,
            )
        )
        return self.classes.get_by_id(class_id)

    def add_student(self, school_class: SchoolClass, *, section: str = "A", roll_number: int = 1,
                    email: Optional[str] = None, full_name: str = "", parent_email: str = "parent@home.test",
                    is_active: bool = True) -> Account:
        email = email or f"student{len(self.students.items) + 1}@school.test"
        account = self.add_account(Role.STUDENT, email, full_name=full_name, is_active=is_active)
        self.students.create(
            StudentProfile(
                account_id=account.account_id,
                student_code=f"STU25{self.students.count() + 1:04d}",
                class_id=school_class.class_id,
                section=section,
                roll_number=roll_number,
                gender=Gender.FEMALE,
                parent_name="Parent",
                parent_email=parent_email,
                parent_phone="9876543210",
            )
        )
        return account


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 15, 9, 0, 0)


@pytest.fixture
def world() -> World:
    accounts = InMemoryAccounts()
    students = InMemoryStudents()
    teachers = InMemoryTeachers()
    classes = InMemoryClasses()
    attendance = InMemoryAttendance()
    audit = InMemoryAudit()
    notifications = InMemoryNotifications()
    discipline = InMemoryDiscipline()
    sessions = InMemorySessionStore()
    mailer = RecordingMailer()

    container = assemble(
        accounts=accounts,
        students=students,
        teachers=teachers,
        classes=classes,
        attendance=attendance,
        audit=audit,
        notifications=notifications,
        discipline=discipline,
        session_store=sessions,
        mailer=mailer,
        token_config=TokenConfig(
            access_secret="test-jwt-secret",
            refresh_secret="test-jwt-refresh-secret",
            access_ttl=timedelta(days=7),
            refresh_ttl=timedelta(days=30),
        ),
        idle_timeout=timedelta(minutes=5),
    )
    return World(
        container=container,
        accounts=accounts,
        students=students,
        teachers=teachers,
        classes=classes,
        attendance=attendance,
        audit=audit,
        notifications=notifications,
        discipline=discipline,
        sessions=sessions,
        mailer=mailer,
    )


@pytest.fixture
def admin(world) -> Account:
    return world.add_account(Role.ADMIN, "admin@school.test", full_name="Head Admin")


@pytest.fixture
def app(world, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    from school_mis.main import create_app

    flask_app = create_app(world.container)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
