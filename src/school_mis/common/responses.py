"""JSON response envelope shared by every controller."""
from __future__ import annotations

import dataclasses
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from flask import jsonify

from .datetime_utils import now_utc


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses/enums/dates into plain JSON-friendly values.

    Dataclass fields are emitted in camelCase, the casing the API speaks.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {_camel(f.name): to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, dict):
        return {(k.value if isinstance(k, Enum) else str(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]
    return value


def _timestamp() -> str:
    return now_utc().isoformat()


def success(data: Any = None, *, message: Optional[str] = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True, "statusCode": status}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = to_jsonable(data)
    for k, v in extra.items():
        body[k] = to_jsonable(v)
    body["timestamp"] = _timestamp()
    return jsonify(body), status


def failure(message: str, *, status: int, errors: Optional[list] = None):
    body: dict[str, Any] = {"success": False, "statusCode": status, "error": message}
    if errors:
        body["errors"] = errors
    body["timestamp"] = _timestamp()
    return jsonify(body), status
