from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.datetime_utils import parse_iso_date
from ..common.responses import success
from ..common.validators import require_fields
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import Forbidden

STAFF = (Role.ADMIN, Role.TEACHER)


def _optional_date(value):
    return parse_iso_date(value) if value else None


def _ensure_self_or_staff(student_id: str) -> None:
    account = current_account()
    if account.role == Role.STUDENT and account.account_id != student_id:
        raise Forbidden("Students can only view their own records")


def register(app: Flask, container: Container) -> None:
    service = container.student_service

    @app.route("/api/students", methods=["GET"], endpoint="students_list")
    @roles_required(*STAFF)
    def list_students():
        rows = service.list_students(
            class_id=request.args.get("classId") or None,
            section=request.args.get("section") or None,
            gender=request.args.get("gender") or None,
        )
        return success(rows, count=len(rows))

    @app.route("/api/students/search", methods=["GET"], endpoint="students_search")
    @roles_required(*STAFF)
    def search_students():
        rows = service.list_students(
            query=request.args.get("q", ""),
            class_id=request.args.get("classId") or None,
            section=request.args.get("section") or None,
            gender=request.args.get("gender") or None,
        )
        return success(rows[:50], count=min(len(rows), 50))

    @app.route("/api/students/class/<class_id>/<section>", methods=["GET"], endpoint="students_class_roster")
    @roles_required(*STAFF)
    def class_roster(class_id: str, section: str):
        rows = service.class_roster(class_id, section)
        return success(rows, count=len(rows))

    @app.route("/api/students/<student_id>", methods=["GET"], endpoint="students_get")
    @roles_required(Role.ADMIN, Role.TEACHER, Role.STUDENT)
    def get_student(student_id: str):
        _ensure_self_or_staff(student_id)
        return success(service.get_student_details(student_id))

    @app.route("/api/students/<student_id>/attendance-report", methods=["GET"], endpoint="students_attendance_report")
    @roles_required(Role.ADMIN, Role.TEACHER, Role.STUDENT)
    def attendance_report(student_id: str):
        _ensure_self_or_staff(student_id)
        report = service.attendance_report(
            student_id,
            start=_optional_date(request.args.get("startDate")),
            end=_optional_date(request.args.get("endDate")),
        )
        return success(report)

    @app.route("/api/students", methods=["POST"], endpoint="students_create")
    @roles_required(Role.ADMIN)
    def create_student():
        body = request.get_json(silent=True) or {}
        require_fields(
            body,
            [
                "email", "password", "fullName", "classId", "section", "rollNumber",
                "gender", "parentName", "parentEmail", "parentPhone",
            ],
        )
        student = service.create_student(
            current_account(),
            email=body["email"],
            password=body["password"],
            full_name=body["fullName"],
            class_id=str(body["classId"]),
            section=str(body["section"]),
            roll_number=body["rollNumber"],
            gender=body["gender"],
            parent_name=body["parentName"],
            parent_email=body["parentEmail"],
            parent_phone=str(body["parentPhone"]),
            phone=body.get("phone"),
            date_of_birth=_optional_date(body.get("dateOfBirth")),
            address=body.get("address"),
            admission_date=_optional_date(body.get("admissionDate")),
            context=request_context(),
        )
        return success(student, message="Student created successfully", status=201)

    @app.route("/api/students/<student_id>", methods=["PUT"], endpoint="students_update")
    @roles_required(*STAFF)
    def update_student(student_id: str):
        body = dict(request.get_json(silent=True) or {})
        if body.get("dateOfBirth"):
            body["dateOfBirth"] = parse_iso_date(body["dateOfBirth"])
        student = service.update_student(current_account(), student_id, body, context=request_context())
        return success(student, message="Student updated successfully")

    @app.route("/api/students/<student_id>", methods=["DELETE"], endpoint="students_delete")
    @roles_required(Role.ADMIN)
    def delete_student(student_id: str):
        service.deactivate_student(current_account(), student_id, context=request_context())
        return success(message="Student deactivated successfully")

    @app.route("/api/students/<student_id>/transfer", methods=["POST"], endpoint="students_transfer")
    @roles_required(Role.ADMIN)
    def transfer_student(student_id: str):
        body = request.get_json(silent=True) or {}
        require_fields(body, ["classId", "section", "rollNumber"])
        student = service.transfer_student(
            current_account(),
            student_id,
            class_id=str(body["classId"]),
            section=str(body["section"]),
            roll_number=body["rollNumber"],
            context=request_context(),
        )
        return success(student, message="Student transferred successfully")
