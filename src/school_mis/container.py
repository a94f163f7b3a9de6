from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from types import ModuleType
from typing import Optional

from .attendance.mongo_attendance_repository import MongoAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .audit.mongo_audit_repository import MongoAuditRepository
from .audit.repository import AuditRepository
from .audit.service import AuditService
from .auth.service import AuthService
from .auth.sessions import InMemorySessionStore, MongoSessionStore, SessionManager, SessionStore
from .auth.tokens import TokenConfig, TokenIssuer
from .classes.mongo_class_repository import MongoClassRepository
from .classes.repository import ClassRepository
from .classes.service import ClassService
from .core.constants import DEFAULT_ACCESS_TOKEN_DAYS, DEFAULT_REFRESH_TOKEN_DAYS, DEFAULT_SESSION_IDLE_SECONDS
from .database.connection import DBConfig, DatabaseConnection
from .discipline.mongo_discipline_repository import MongoDisciplineRepository
from .discipline.repository import DisciplineRepository
from .discipline.service import DisciplineService
from .notifications.mailer import MailConfig, SmtpMailer
from .notifications.mongo_notification_repository import MongoNotificationRepository
from .notifications.repository import NotificationRepository
from .notifications.service import Mailer, NotificationService
from .students.mongo_student_repository import MongoStudentProfileRepository
from .students.repository import StudentProfileRepository
from .students.service import StudentService
from .teachers.mongo_teacher_repository import MongoTeacherProfileRepository
from .teachers.repository import TeacherProfileRepository
from .teachers.service import TeacherService
from .users.mongo_account_repository import MongoAccountRepository
from .users.repository import AccountRepository
from .users.service import UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    accounts_repo: AccountRepository
    students_repo: StudentProfileRepository
    teachers_repo: TeacherProfileRepository
    classes_repo: ClassRepository
    attendance_repo: AttendanceRepository
    audit_repo: AuditRepository
    notifications_repo: NotificationRepository
    discipline_repo: DisciplineRepository

    sessions: SessionManager
    tokens: TokenIssuer

    audit_service: AuditService
    notification_service: NotificationService
    user_service: UserService
    auth_service: AuthService
    attendance_service: AttendanceService
    student_service: StudentService
    teacher_service: TeacherService
    class_service: ClassService
    discipline_service: DisciplineService


def assemble(
    *,
    accounts: AccountRepository,
    students: StudentProfileRepository,
    teachers: TeacherProfileRepository,
    classes: ClassRepository,
    attendance: AttendanceRepository,
    audit: AuditRepository,
    notifications: NotificationRepository,
    discipline: DisciplineRepository,
    session_store: SessionStore,
    mailer: Mailer,
    token_config: TokenConfig,
    idle_timeout: timedelta = timedelta(seconds=DEFAULT_SESSION_IDLE_SECONDS),
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    """Wire services over the given repositories (Mongo-backed or in-memory)."""

    sessions = SessionManager(session_store, idle_timeout=idle_timeout)
    tokens = TokenIssuer(token_config)

    audit_service = AuditService(audit)
    notification_service = NotificationService(notifications, mailer, accounts, students, classes)
    user_service = UserService(accounts, audit_service)
    auth_service = AuthService(accounts, tokens, sessions, audit_service, notification_service, students, teachers)
    attendance_service = AttendanceService(
        attendance,
        accounts,
        students,
        classes,
        audit_service,
        notification_service,
    )
    student_service = StudentService(
        user_service,
        accounts,
        students,
        classes,
        attendance_service,
        discipline,
        notification_service,
        audit_service,
    )
    teacher_service = TeacherService(user_service, accounts, teachers, classes, audit_service)
    class_service = ClassService(classes, accounts, teachers, students, audit_service)
    discipline_service = DisciplineService(discipline, accounts, audit_service, notification_service)

    return Container(
        conn=conn,
        accounts_repo=accounts,
        students_repo=students,
        teachers_repo=teachers,
        classes_repo=classes,
        attendance_repo=attendance,
        audit_repo=audit,
        notifications_repo=notifications,
        discipline_repo=discipline,
        sessions=sessions,
        tokens=tokens,
        audit_service=audit_service,
        notification_service=notification_service,
        user_service=user_service,
        auth_service=auth_service,
        attendance_service=attendance_service,
        student_service=student_service,
        teacher_service=teacher_service,
        class_service=class_service,
        discipline_service=discipline_service,
    )


def build_container(settings: ModuleType) -> Container:
    conn = DatabaseConnection.get_instance(
        DBConfig(
            uri=str(getattr(settings, "MONGODB_URI")),
            database=str(getattr(settings, "MONGODB_DATABASE")),
            timeout_ms=int(getattr(settings, "MONGODB_TIMEOUT_MS", 5000)),
        )
    )

    backend = str(getattr(settings, "SESSION_BACKEND", "memory")).lower()
    session_store: SessionStore = MongoSessionStore(conn) if backend == "mongo" else InMemorySessionStore()

    mailer = SmtpMailer(
        MailConfig(
            host=str(getattr(settings, "EMAIL_HOST", "")),
            port=int(getattr(settings, "EMAIL_PORT", 587)),
            user=str(getattr(settings, "EMAIL_USER", "")),
            password=str(getattr(settings, "EMAIL_PASS", "")),
            sender=str(getattr(settings, "EMAIL_FROM", "noreply@schoolmis.com")),
        )
    )

    return assemble(
        accounts=MongoAccountRepository(conn),
        students=MongoStudentProfileRepository(conn),
        teachers=MongoTeacherProfileRepository(conn),
        classes=MongoClassRepository(conn),
        attendance=MongoAttendanceRepository(conn),
        audit=MongoAuditRepository(conn),
        notifications=MongoNotificationRepository(conn),
        discipline=MongoDisciplineRepository(conn),
        session_store=session_store,
        mailer=mailer,
        token_config=TokenConfig(
            access_secret=str(getattr(settings, "JWT_SECRET")),
            refresh_secret=str(getattr(settings, "JWT_REFRESH_SECRET")),
            access_ttl=timedelta(days=int(getattr(settings, "JWT_EXPIRE_DAYS", DEFAULT_ACCESS_TOKEN_DAYS))),
            refresh_ttl=timedelta(days=int(getattr(settings, "JWT_REFRESH_EXPIRE_DAYS", DEFAULT_REFRESH_TOKEN_DAYS))),
        ),
        idle_timeout=timedelta(
            seconds=int(getattr(settings, "SESSION_IDLE_TIMEOUT_SECONDS", DEFAULT_SESSION_IDLE_SECONDS)),
        ),
        conn=conn,
    )
