from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING

from ..core.enums import EmploymentType
from ..database.connection import DatabaseConnection
from ..database.mongo_base import as_date, as_datetime, translate_duplicates
from .model import AssignedClass, TeacherProfile
from .repository import TeacherProfileRepository


def _to_profile(doc: Dict[str, Any]) -> TeacherProfile:
    return TeacherProfile(
        account_id=doc["_id"],
        teacher_code=doc["teacher_code"],
        qualification=doc.get("qualification", ""),
        employment_type=EmploymentType(doc["employment_type"]),
        experience=int(doc.get("experience", 0)),
        subjects=tuple(doc.get("subjects") or ()),
        assigned_classes=tuple(
            AssignedClass(class_id=a["class_id"], section=a["section"], subject=a.get("subject", "General"))
            for a in doc.get("assigned_classes") or ()
        ),
        joining_date=as_date(doc.get("joining_date")),
    )


def _assignment_doc(a: AssignedClass) -> dict:
    return {"class_id": a.class_id, "section": a.section, "subject": a.subject}


class MongoTeacherProfileRepository(TeacherProfileRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.teacher_profiles

    def get(self, account_id: str) -> Optional[TeacherProfile]:
        doc = self._col.find_one({"_id": str(account_id)})
        return _to_profile(doc) if doc else None

    def create(self, profile: TeacherProfile) -> None:
        with translate_duplicates(f"Teacher code {profile.teacher_code} already exists"):
            self._col.insert_one({
                "_id": profile.account_id,
                "teacher_code": profile.teacher_code,
                "qualification": profile.qualification,
                "employment_type": profile.employment_type.value,
                "experience": int(profile.experience),
                "subjects": list(profile.subjects),
                "assigned_classes": [_assignment_doc(a) for a in profile.assigned_classes],
                "joining_date": as_datetime(profile.joining_date),
            })

    def update(self, account_id: str, changes: dict[str, Any]) -> bool:
        if not changes:
            return self.get(account_id) is not None
        doc = dict(changes)
        if "employment_type" in doc and isinstance(doc["employment_type"], EmploymentType):
            doc["employment_type"] = doc["employment_type"].value
        if "subjects" in doc:
            doc["subjects"] = list(doc["subjects"])
        if "joining_date" in doc:
            doc["joining_date"] = as_datetime(doc["joining_date"])
        res = self._col.update_one({"_id": str(account_id)}, {"$set": doc})
        return res.matched_count > 0

    def add_assignment(self, account_id: str, assignment: AssignedClass) -> bool:
        res = self._col.update_one({"_id": str(account_id)}, {"$push": {"assigned_classes": _assignment_doc(assignment)}})
        return res.matched_count > 0

    def remove_assignments(self, account_id: str, *, class_id: str, section: Optional[str] = None) -> bool:
        match: Dict[str, Any] = {"class_id": class_id}
        if section:
            match["section"] = section
        res = self._col.update_one({"_id": str(account_id)}, {"$pull": {"assigned_classes": match}})
        return res.matched_count > 0

    def list_profiles(self, *, account_ids: Optional[Sequence[str]] = None) -> Sequence[TeacherProfile]:
        query: Dict[str, Any] = {}
        if account_ids is not None:
            query["_id"] = {"$in": [str(a) for a in account_ids]}
        return [_to_profile(d) for d in self._col.find(query).sort("teacher_code", ASCENDING)]

    def count(self) -> int:
        return int(self._col.count_documents({}))
