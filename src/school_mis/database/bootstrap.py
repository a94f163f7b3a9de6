from __future__ import annotations

import logging

from pymongo import ASCENDING, DESCENDING, IndexModel
from pymongo.database import Database

logger = logging.getLogger(__name__)


def ensure_indexes(db: Database) -> None:
    """Create collection indexes. Idempotent: safe to run on every startup."""

    db.accounts.create_indexes([
        IndexModel([("email", ASCENDING)], unique=True),
        IndexModel([("role", ASCENDING)]),
        IndexModel([("is_active", ASCENDING)]),
        IndexModel([("password_reset_token", ASCENDING)], sparse=True),
    ])
    db.student_profiles.create_indexes([
        IndexModel([("class_id", ASCENDING), ("section", ASCENDING), ("roll_number", ASCENDING)], unique=True),
        IndexModel([("student_code", ASCENDING)], unique=True),
        IndexModel([("parent_email", ASCENDING)]),
    ])
    db.teacher_profiles.create_indexes([
        IndexModel([("teacher_code", ASCENDING)], unique=True),
        IndexModel([("assigned_classes.class_id", ASCENDING)]),
    ])
    db.classes.create_indexes([
        IndexModel([("class_name", ASCENDING), ("academic_year", ASCENDING)], unique=True),
    ])
    # one attendance record per student per day
    db.attendance.create_indexes([
        IndexModel([("student_id", ASCENDING), ("date", ASCENDING)], unique=True),
        IndexModel([("class_id", ASCENDING), ("section", ASCENDING), ("date", ASCENDING)]),
        IndexModel([("status", ASCENDING)]),
        IndexModel([("date", DESCENDING)]),
    ])
    db.audit_logs.create_indexes([
        IndexModel([("actor_id", ASCENDING), ("timestamp", DESCENDING)]),
        IndexModel([("event", ASCENDING), ("timestamp", DESCENDING)]),
        IndexModel([("resource", ASCENDING), ("resource_id", ASCENDING)]),
    ])
    db.notifications.create_indexes([
        IndexModel([("recipient_id", ASCENDING), ("read", ASCENDING)]),
        IndexModel([("created_at", DESCENDING)]),
    ])
    db.discipline.create_indexes([
        IndexModel([("student_id", ASCENDING), ("date", DESCENDING)]),
        IndexModel([("resolved", ASCENDING)]),
    ])
    db.sessions.create_indexes([
        IndexModel([("last_activity", ASCENDING)]),
    ])

    logger.info("MongoDB indexes ready (database=%s)", db.name)


def list_collections(db: Database) -> list[str]:
    return sorted(db.list_collection_names())
