from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.datetime_utils import parse_iso_date
from ..common.responses import success
from ..common.validators import require_fields
from ..container import Container
from ..core.enums import Role

STAFF = (Role.ADMIN, Role.TEACHER)


def register(app: Flask, container: Container) -> None:
    service = container.discipline_service

    @app.route("/api/discipline", methods=["POST"], endpoint="discipline_create")
    @roles_required(*STAFF)
    def create_record():
        body = request.get_json(silent=True) or {}
        require_fields(body, ["studentId", "type", "description", "severity"])
        record = service.create_record(
            current_account(),
            student_id=str(body["studentId"]),
            type=body["type"],
            description=body["description"],
            severity=body["severity"],
            day=parse_iso_date(body["date"]) if body.get("date") else None,
            action_taken=body.get("actionTaken"),
            remarks=body.get("remarks"),
            context=request_context(),
        )
        return success(record, message="Discipline record created", status=201)

    @app.route("/api/discipline/student/<student_id>", methods=["GET"], endpoint="discipline_student")
    @roles_required(*STAFF)
    def student_records(student_id: str):
        records = service.list_for_student(student_id)
        return success(records, count=len(records))

    @app.route("/api/discipline/<record_id>/resolve", methods=["PATCH"], endpoint="discipline_resolve")
    @roles_required(*STAFF)
    def resolve_record(record_id: str):
        body = request.get_json(silent=True) or {}
        record = service.resolve(current_account(), record_id, remarks=body.get("remarks"), context=request_context())
        return success(record, message="Discipline record resolved")
