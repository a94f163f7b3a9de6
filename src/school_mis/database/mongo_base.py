from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

from ..core.exceptions import DuplicateEntry


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an id coming from a URL/body; None when it cannot be an ObjectId.

    Repositories treat None as "no such document", which services turn into NotFound.
    """

    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def id_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def as_datetime(value: Any) -> Optional[datetime]:
    """BSON has no date type: days are stored as midnight datetimes."""

    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    raise TypeError(f"Unsupported date value type: {type(value)!r}")


def as_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


@contextmanager
def translate_duplicates(message: str) -> Iterator[None]:
    """Turn unique-index violations into the domain DuplicateEntry error."""

    try:
        yield
    except DuplicateKeyError:
        raise DuplicateEntry(message)


def bson_safe(value: Any) -> Any:
    """Coerce free-form payloads (audit changes, metadata) into BSON-encodable values."""

    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date) and not isinstance(value, datetime):
        return as_datetime(value)
    if isinstance(value, dict):
        return {str(k): bson_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [bson_safe(v) for v in value]
    return value
