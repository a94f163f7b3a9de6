from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from pymongo import DESCENDING

from ..core.enums import DisciplineType, SeverityLevel
from ..database.connection import DatabaseConnection
from ..database.mongo_base import as_date, as_datetime, id_str, to_object_id
from .model import DisciplineRecord, NewDisciplineRecord
from .repository import DisciplineRepository


def _to_record(doc: Dict[str, Any]) -> DisciplineRecord:
    return DisciplineRecord(
        record_id=id_str(doc["_id"]),
        student_id=doc["student_id"],
        teacher_id=doc["teacher_id"],
        day=as_date(doc["date"]),
        type=DisciplineType(doc["type"]),
        description=doc["description"],
        severity=SeverityLevel(doc["severity"]),
        action_taken=doc.get("action_taken"),
        remarks=doc.get("remarks"),
        resolved=bool(doc.get("resolved", False)),
        resolved_at=doc.get("resolved_at"),
        resolved_by=doc.get("resolved_by"),
        created_at=doc.get("created_at"),
    )


class MongoDisciplineRepository(DisciplineRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.discipline

    def create(self, record: NewDisciplineRecord, *, now: datetime) -> str:
        res = self._col.insert_one({
            "student_id": record.student_id,
            "teacher_id": record.teacher_id,
            "date": as_datetime(record.day),
            "type": record.type.value,
            "description": record.description,
            "severity": record.severity.value,
            "action_taken": record.action_taken,
            "remarks": record.remarks,
            "resolved": False,
            "created_at": now,
        })
        return id_str(res.inserted_id)

    def get(self, record_id: str) -> Optional[DisciplineRecord]:
        oid = to_object_id(record_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _to_record(doc) if doc else None

    def list_for_student(self, student_id: str, *, limit: int = 50) -> Sequence[DisciplineRecord]:
        cursor = self._col.find({"student_id": student_id}).sort("date", DESCENDING).limit(int(limit))
        return [_to_record(d) for d in cursor]

    def resolve(self, record_id: str, *, resolved_by: str, remarks: Optional[str], now: datetime) -> bool:
        oid = to_object_id(record_id)
        if oid is None:
            return False
        fields: Dict[str, Any] = {"resolved": True, "resolved_at": now, "resolved_by": resolved_by}
        if remarks is not None:
            fields["remarks"] = remarks
        res = self._col.update_one({"_id": oid}, {"$set": fields})
        return res.matched_count > 0
