from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..common.datetime_utils import day_start
from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mongo_base import as_date, id_str, to_object_id
from .model import AttendanceRecord, UpsertOutcome
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _to_record(doc: Dict[str, Any]) -> AttendanceRecord:
    late = doc.get("late_minutes")
    return AttendanceRecord(
        record_id=id_str(doc["_id"]),
        student_id=doc["student_id"],
        class_id=doc["class_id"],
        section=doc["section"],
        day=as_date(doc["date"]),
        status=AttendanceStatus(doc["status"]),
        marked_by=doc.get("marked_by", ""),
        remarks=doc.get("remarks"),
        late_minutes=int(late) if late is not None else None,
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def _query(
    *,
    student_id: Optional[str],
    class_id: Optional[str],
    section: Optional[str],
    start: Optional[date],
    end: Optional[date],
) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if student_id is not None:
        query["student_id"] = student_id
    if class_id is not None:
        query["class_id"] = class_id
    if section is not None:
        query["section"] = section
    if start is not None or end is not None:
        window: Dict[str, Any] = {}
        if start is not None:
            window["$gte"] = day_start(start)
        if end is not None:
            # inclusive end day
            window["$lt"] = day_start(end) + timedelta(days=1)
        query["date"] = window
    return query


class MongoAttendanceRepository(AttendanceRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.attendance

    def upsert(
        self,
        *,
        student_id: str,
        class_id: str,
        section: str,
        day: date,
        status: AttendanceStatus,
        marked_by: str,
        remarks: Optional[str],
        late_minutes: Optional[int],
        now: datetime,
    ) -> UpsertOutcome:
        key = {"student_id": student_id, "date": day_start(day)}
        changes = {
            "$set": {
                "class_id": class_id,
                "section": section,
                "status": status.value,
                "marked_by": marked_by,
                "remarks": remarks,
                "late_minutes": late_minutes,
                "updated_at": now,
            },
            "$setOnInsert": {"created_at": now},
        }
        try:
            res = self._col.update_one(key, changes, upsert=True)
        except DuplicateKeyError:
            # two writers inserted the same (student, day) at once; the loser updates
            logger.info("Attendance upsert race for student %s on %s, retrying as update", student_id, day)
            res = self._col.update_one(key, changes, upsert=True)

        doc = self._col.find_one(key)
        return UpsertOutcome(record=_to_record(doc), created=res.upserted_id is not None)

    def get_by_id(self, record_id: str) -> Optional[AttendanceRecord]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _to_record(doc) if doc else None

    def update(self, record_id: str, changes: Dict[str, Any], *, now: datetime) -> bool:
        oid = to_object_id(record_id)
        if oid is None:
            return False
        fields = dict(changes)
        if isinstance(fields.get("status"), AttendanceStatus):
            fields["status"] = fields["status"].value
        fields["updated_at"] = now
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )
        return doc is not None

    def find(
        self,
        *,
        student_id: Optional[str] = None,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: Optional[int] = None,
        newest_first: bool = True,
    ) -> Sequence[AttendanceRecord]:
        query = _query(student_id=student_id, class_id=class_id, section=section, start=start, end=end)
        cursor = self._col.find(query).sort("date", DESCENDING if newest_first else ASCENDING)
        if limit:
            cursor = cursor.limit(int(limit))
        return [_to_record(d) for d in cursor]

    def count_by_status(
        self,
        *,
        student_id: Optional[str] = None,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Dict[AttendanceStatus, int]:
        query = _query(student_id=student_id, class_id=class_id, section=section, start=start, end=end)
        counts = {s: 0 for s in AttendanceStatus}
        for row in self._col.aggregate([
            {"$match": query},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}},
        ]):
            counts[AttendanceStatus(row["_id"])] = int(row["count"])
        return counts
