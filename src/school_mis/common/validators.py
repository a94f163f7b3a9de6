from __future__ import annotations

import re
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Type, TypeVar

from ..core.constants import PASSWORD_MIN_LENGTH, PASSWORD_SPECIAL_CHARS
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)

_EMAIL_RE = re.compile(r"^\S+@\S+\.\S+$")
_PHONE_RE = re.compile(r"^[0-9]{10}$")


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: Optional[str], field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_max_length(value: Optional[str], field_name: str, max_len: int) -> Optional[str]:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} cannot exceed {max_len} characters")
    return value


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Aggregate every missing field into one ValidationError."""
    missing = [f for f in fields if payload.get(f) in (None, "", [])]
    if missing:
        raise ValidationError(
            "Missing required fields",
            errors=[f"{f} is required" for f in missing],
        )


def require_email(value: Optional[str], field_name: str = "Email") -> str:
    v = require_non_empty(value, field_name).lower()
    if not _EMAIL_RE.match(v):
        raise ValidationError(f"Please enter a valid {field_name.lower()}")
    return v


def require_phone(value: Optional[str], field_name: str = "Phone") -> str:
    v = require_non_empty(value, field_name)
    if not _PHONE_RE.match(v):
        raise ValidationError(f"{field_name} must be a valid 10-digit number")
    return v


def require_int_range(value: Any, field_name: str, low: int, high: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if n < low or n > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return n


def require_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value or "").strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")


def require_strong_password(value: Optional[str], field_name: str = "Password") -> str:
    errors = []
    if value is None or len(value) < PASSWORD_MIN_LENGTH:
        errors.append(f"{field_name} must be at least {PASSWORD_MIN_LENGTH} characters")
    value = value or ""
    if not re.search(r"[A-Z]", value):
        errors.append(f"{field_name} must contain at least one uppercase letter")
    if not re.search(r"[0-9]", value):
        errors.append(f"{field_name} must contain at least one number")
    if not any(c in PASSWORD_SPECIAL_CHARS for c in value):
        errors.append(f"{field_name} must contain at least one special character")
    if errors:
        raise ValidationError(f"{field_name} does not meet the password policy", errors=errors)
    return value
