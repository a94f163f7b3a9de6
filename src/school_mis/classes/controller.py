from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.responses import success
from ..common.validators import require_fields
from ..container import Container
from ..core.enums import Role

STAFF = (Role.ADMIN, Role.TEACHER)


def register(app: Flask, container: Container) -> None:
    service = container.class_service

    @app.route("/api/classes", methods=["GET"], endpoint="classes_list")
    @roles_required(*STAFF)
    def list_classes():
        rows = service.list_classes(academic_year=request.args.get("academicYear") or None)
        return success(rows, count=len(rows))

    @app.route("/api/classes/dropdown", methods=["GET"], endpoint="classes_dropdown")
    @roles_required(*STAFF)
    def dropdown():
        return success(service.dropdown(academic_year=request.args.get("academicYear") or None))

    @app.route("/api/classes/<class_id>", methods=["GET"], endpoint="classes_get")
    @roles_required(*STAFF)
    def get_class(class_id: str):
        return success(service.get_class(class_id))

    @app.route("/api/classes/<class_id>/stats", methods=["GET"], endpoint="classes_stats")
    @roles_required(*STAFF)
    def class_stats(class_id: str):
        return success(service.class_stats(class_id))

    @app.route("/api/classes/<class_id>/<section>/students", methods=["GET"], endpoint="classes_roster")
    @roles_required(*STAFF)
    def class_students(class_id: str, section: str):
        rows = container.student_service.class_roster(class_id, section)
        return success(rows, count=len(rows))

    @app.route("/api/classes", methods=["POST"], endpoint="classes_create")
    @roles_required(Role.ADMIN)
    def create_class():
        body = request.get_json(silent=True) or {}
        require_fields(body, ["className", "sections", "classTeacher", "academicYear"])
        school_class = service.create_class(
            current_account(),
            class_name=body["className"],
            sections=body["sections"],
            class_teacher_id=str(body["classTeacher"]),
            academic_year=body["academicYear"],
            capacity=body.get("capacity", 40),
            subjects=body.get("subjects"),
            room_number=body.get("roomNumber"),
            context=request_context(),
        )
        return success(school_class, message="Class created successfully", status=201)

    @app.route("/api/classes/<class_id>", methods=["PUT"], endpoint="classes_update")
    @roles_required(Role.ADMIN)
    def update_class(class_id: str):
        body = request.get_json(silent=True) or {}
        school_class = service.update_class(current_account(), class_id, body, context=request_context())
        return success(school_class, message="Class updated successfully")

    @app.route("/api/classes/<class_id>", methods=["DELETE"], endpoint="classes_delete")
    @roles_required(Role.ADMIN)
    def delete_class(class_id: str):
        service.delete_class(current_account(), class_id, context=request_context())
        return success(message="Class deleted successfully")
