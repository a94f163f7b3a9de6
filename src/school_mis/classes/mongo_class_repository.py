from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pymongo import ASCENDING

from ..database.connection import DatabaseConnection
from ..database.mongo_base import id_str, to_object_id, translate_duplicates
from .model import ClassSubject, SchoolClass
from .repository import ClassRepository


def _to_class(doc: Dict[str, Any]) -> SchoolClass:
    return SchoolClass(
        class_id=id_str(doc["_id"]),
        class_name=doc["class_name"],
        sections=tuple(doc.get("sections") or ()),
        class_teacher_id=doc["class_teacher_id"],
        academic_year=doc["academic_year"],
        capacity=int(doc.get("capacity", 40)),
        subjects=tuple(ClassSubject(name=s["name"], teacher_id=s["teacher_id"]) for s in doc.get("subjects") or ()),
        room_number=doc.get("room_number"),
    )


def _subjects_doc(subjects) -> list[dict]:
    return [{"name": s.name, "teacher_id": s.teacher_id} for s in subjects]


class MongoClassRepository(ClassRepository):
    def __init__(self, conn: DatabaseConnection):
        self._conn = conn

    @property
    def _col(self):
        return self._conn.db.classes

    def get_by_id(self, class_id: str) -> Optional[SchoolClass]:
        oid = to_object_id(class_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        return _to_class(doc) if doc else None

    def find_by_name(self, *, class_name: str, academic_year: str) -> Optional[SchoolClass]:
        doc = self._col.find_one({"class_name": class_name, "academic_year": academic_year})
        return _to_class(doc) if doc else None

    def create(self, school_class: SchoolClass) -> str:
        doc = {
            "class_name": school_class.class_name,
            "sections": list(school_class.sections),
            "class_teacher_id": school_class.class_teacher_id,
            "academic_year": school_class.academic_year,
            "capacity": int(school_class.capacity),
            "subjects": _subjects_doc(school_class.subjects),
            "room_number": school_class.room_number,
        }
        with translate_duplicates(
            f"Class {school_class.class_name} already exists for academic year {school_class.academic_year}"
        ):
            res = self._col.insert_one(doc)
        return id_str(res.inserted_id)

    def update(self, class_id: str, changes: dict[str, Any]) -> bool:
        oid = to_object_id(class_id)
        if oid is None:
            return False
        doc = dict(changes)
        if "sections" in doc:
            doc["sections"] = list(doc["sections"])
        if "subjects" in doc:
            doc["subjects"] = _subjects_doc(doc["subjects"])
        with translate_duplicates("A class with this name already exists for the academic year"):
            res = self._col.update_one({"_id": oid}, {"$set": doc})
        return res.matched_count > 0

    def delete(self, class_id: str) -> bool:
        oid = to_object_id(class_id)
        if oid is None:
            return False
        return self._col.delete_one({"_id": oid}).deleted_count > 0

    def list_classes(self, *, academic_year: Optional[str] = None) -> Sequence[SchoolClass]:
        query: Dict[str, Any] = {}
        if academic_year:
            query["academic_year"] = academic_year
        return [_to_class(d) for d in self._col.find(query).sort("class_name", ASCENDING)]
