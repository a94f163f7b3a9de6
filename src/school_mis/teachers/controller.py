from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.datetime_utils import parse_iso_date
from ..common.responses import success
from ..common.validators import require_fields
from ..container import Container
from ..core.enums import Role


def register(app: Flask, container: Container) -> None:
    service = container.teacher_service

    @app.route("/api/teachers", methods=["GET"], endpoint="teachers_list")
    @roles_required(Role.ADMIN)
    def list_teachers():
        rows = service.list_teachers()
        return success(rows, count=len(rows))

    @app.route("/api/teachers/<teacher_id>", methods=["GET"], endpoint="teachers_get")
    @roles_required(Role.ADMIN, Role.TEACHER)
    def get_teacher(teacher_id: str):
        return success(service.get_teacher(teacher_id))

    @app.route("/api/teachers/<teacher_id>/classes", methods=["GET"], endpoint="teachers_classes")
    @roles_required(Role.ADMIN, Role.TEACHER)
    def teacher_classes(teacher_id: str):
        return success(service.assigned_classes(teacher_id))

    @app.route("/api/teachers", methods=["POST"], endpoint="teachers_create")
    @roles_required(Role.ADMIN)
    def create_teacher():
        body = request.get_json(silent=True) or {}
        require_fields(body, ["email", "password", "fullName", "qualification"])
        teacher = service.create_teacher(
            current_account(),
            email=body["email"],
            password=body["password"],
            full_name=body["fullName"],
            qualification=body["qualification"],
            employment_type=body.get("employmentType", "permanent"),
            experience=body.get("experience", 0),
            subjects=body.get("subjects"),
            phone=body.get("phone"),
            joining_date=parse_iso_date(body["joiningDate"]) if body.get("joiningDate") else None,
            context=request_context(),
        )
        return success(teacher, message="Teacher created successfully", status=201)

    @app.route("/api/teachers/<teacher_id>", methods=["PUT"], endpoint="teachers_update")
    @roles_required(Role.ADMIN)
    def update_teacher(teacher_id: str):
        body = request.get_json(silent=True) or {}
        teacher = service.update_teacher(current_account(), teacher_id, body, context=request_context())
        return success(teacher, message="Teacher updated successfully")

    @app.route("/api/teachers/<teacher_id>", methods=["DELETE"], endpoint="teachers_delete")
    @roles_required(Role.ADMIN)
    def delete_teacher(teacher_id: str):
        service.deactivate_teacher(current_account(), teacher_id, context=request_context())
        return success(message="Teacher deactivated successfully")

    @app.route("/api/teachers/<teacher_id>/assign-class", methods=["POST"], endpoint="teachers_assign_class")
    @roles_required(Role.ADMIN)
    def assign_class(teacher_id: str):
        body = request.get_json(silent=True) or {}
        require_fields(body, ["classId", "section", "subject"])
        rows = service.assign_class(
            current_account(),
            teacher_id,
            class_id=str(body["classId"]),
            section=str(body["section"]),
            subject=body["subject"],
            context=request_context(),
        )
        return success(rows, message="Class assigned successfully")

    @app.route(
        "/api/teachers/<teacher_id>/remove-class/<class_id>/<section>",
        methods=["DELETE"],
        endpoint="teachers_remove_class",
    )
    @roles_required(Role.ADMIN)
    def remove_class(teacher_id: str, class_id: str, section: str):
        rows = service.remove_class(current_account(), teacher_id, class_id=class_id, section=section, context=request_context())
        return success(rows, message="Class removed successfully")
