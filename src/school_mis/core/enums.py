from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account role used for route authorization."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


class AttendanceStatus(str, Enum):
    """Per-day attendance status stored on an attendance record."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    LEAVE = "leave"


class EventType(str, Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VIEW = "view"


class NotificationType(str, Enum):
    ATTENDANCE = "attendance"
    DISCIPLINE = "discipline"
    ANNOUNCEMENT = "announcement"
    ACADEMIC = "academic"
    SYSTEM = "system"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class EmploymentType(str, Enum):
    PERMANENT = "permanent"
    CONTRACT = "contract"
    TEMPORARY = "temporary"


class DisciplineType(str, Enum):
    ACHIEVEMENT = "achievement"
    WARNING = "warning"
    COMPLAINT = "complaint"
    SUSPENSION = "suspension"
    EXPULSION = "expulsion"


class SeverityLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"
