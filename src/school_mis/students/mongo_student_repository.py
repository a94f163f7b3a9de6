from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING

from ..core.enums import Gender
from ..database.connection import DatabaseConnection
from ..database.mongo_base import as_date, as_datetime, translate_duplicates
from .model import StudentProfile
from .repository import StudentProfileRepository

_DATE_FIELDS = ("date_of_birth", "admission_date")


def _to_profile(doc: Dict[str, Any]) -> StudentProfile:
    return StudentProfile(
        account_id=doc["_id"],
        student_code=doc["student_code"],
        class_id=doc["class_id"],
        section=doc["section"],
        roll_number=int(doc["roll_number"]),
        gender=Gender(doc["gender"]),
        parent_name=doc.get("parent_name", ""),
        parent_email=doc.get("parent_email", ""),
        parent_phone=doc.get("parent_phone", ""),
        date_of_birth=as_date(doc.get("date_of_birth")),
        address=doc.get("address"),
        admission_date=as_date(doc.get("admission_date")),
    )


class MongoStudentProfileRepository(StudentProfileRepository):
    """Profiles use the owning account id (hex string) as their _id."""

    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.student_profiles

    def get(self, account_id: str) -> Optional[StudentProfile]:
        doc = self._col.find_one({"_id": str(account_id)})
        return _to_profile(doc) if doc else None

    def create(self, profile: StudentProfile) -> None:
        doc = {
            "_id": profile.account_id,
            "student_code": profile.student_code,
            "class_id": profile.class_id,
            "section": profile.section,
            "roll_number": int(profile.roll_number),
            "gender": profile.gender.value,
            "parent_name": profile.parent_name,
            "parent_email": profile.parent_email,
            "parent_phone": profile.parent_phone,
            "date_of_birth": as_datetime(profile.date_of_birth),
            "address": profile.address,
            "admission_date": as_datetime(profile.admission_date),
        }
        with translate_duplicates(f"Roll number {profile.roll_number} is already taken in {profile.section}"):
            self._col.insert_one(doc)

    def update(self, account_id: str, changes: dict[str, Any]) -> bool:
        if not changes:
            return self.get(account_id) is not None
        doc = dict(changes)
        for f in _DATE_FIELDS:
            if f in doc:
                doc[f] = as_datetime(doc[f])
        if "gender" in doc and isinstance(doc["gender"], Gender):
            doc["gender"] = doc["gender"].value
        with translate_duplicates("Roll number is already taken in this section"):
            res = self._col.update_one({"_id": str(account_id)}, {"$set": doc})
        return res.matched_count > 0

    def find_by_roll(self, *, class_id: str, section: str, roll_number: int) -> Optional[StudentProfile]:
        doc = self._col.find_one({"class_id": class_id, "section": section, "roll_number": int(roll_number)})
        return _to_profile(doc) if doc else None

    def list_profiles(
        self,
        *,
        class_id: Optional[str] = None,
        section: Optional[str] = None,
        account_ids: Optional[Sequence[str]] = None,
    ) -> Sequence[StudentProfile]:
        query: Dict[str, Any] = {}
        if class_id:
            query["class_id"] = class_id
        if section:
            query["section"] = section
        if account_ids is not None:
            query["_id"] = {"$in": [str(a) for a in account_ids]}
        cursor = self._col.find(query).sort([("class_id", ASCENDING), ("section", ASCENDING), ("roll_number", ASCENDING)])
        return [_to_profile(d) for d in cursor]

    def count(self) -> int:
        return int(self._col.count_documents({}))
