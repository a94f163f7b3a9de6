from __future__ import annotations

from flask import Flask, request

from ..auth.guards import current_account, request_context, roles_required
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.responses import success
from ..common.validators import require_fields, require_int_range
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .model import BulkEntry

STAFF = (Role.ADMIN, Role.TEACHER)


def _optional_date(name: str):
    value = request.args.get(name)
    return parse_iso_date(value) if value else None


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance", methods=["POST"], endpoint="attendance_mark")
    @roles_required(*STAFF)
    def mark_attendance():
        body = request.get_json(silent=True) or {}
        require_fields(body, ["studentId", "classId", "section", "date", "status"])
        record = service.mark_attendance(
            student_id=str(body["studentId"]),
            class_id=str(body["classId"]),
            section=str(body["section"]),
            day=parse_iso_date(str(body["date"])),
            status=body["status"],
            marked_by=current_account(),
            remarks=body.get("remarks"),
            late_minutes=body.get("lateMinutes"),
            context=request_context(),
        )
        return success(record, message="Attendance marked successfully", status=201)

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="attendance_mark_bulk")
    @roles_required(*STAFF)
    def mark_bulk_attendance():
        body = request.get_json(silent=True) or {}
        require_fields(body, ["classId", "section", "date", "attendanceData"])
        rows = body["attendanceData"]
        if not isinstance(rows, list):
            raise ValidationError("attendanceData must be a list")

        entries = []
        rejected = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                rejected.append({"studentId": None, "error": f"Invalid attendance entry at index {index}"})
                continue
            entries.append(BulkEntry(
                student_id=str(row.get("studentId", "")),
                status=row.get("status"),
                remarks=row.get("remarks"),
                late_minutes=row.get("lateMinutes"),
            ))
        result = service.mark_bulk_attendance(
            entries,
            class_id=str(body["classId"]),
            section=str(body["section"]),
            day=parse_iso_date(str(body["date"])),
            marked_by=current_account(),
            context=request_context(),
        )
        errors = rejected + list(result.errors)
        message = "Attendance marked with some errors" if errors else "All attendance marked successfully"
        return success(
            {"successful": result.results, "errors": errors},
            message=message,
            status=201,
        )

    @app.route("/api/attendance/class/<class_id>/<section>", methods=["GET"], endpoint="attendance_class")
    @roles_required(*STAFF)
    def class_attendance(class_id: str, section: str):
        day = _optional_date("date") or now_local().date()
        rows = service.get_class_attendance(class_id, section, day)
        return success({
            "date": day,
            "marked": any(r.status is not None for r in rows),
            "attendance": rows,
        })

    @app.route("/api/attendance/student/<student_id>", methods=["GET"], endpoint="attendance_student")
    @roles_required(*STAFF)
    def student_attendance(student_id: str):
        limit = require_int_range(request.args.get("limit", DEFAULT_HISTORY_LIMIT), "Limit", 1, 365)
        records = service.get_student_attendance(
            student_id,
            start=_optional_date("startDate"),
            end=_optional_date("endDate"),
            limit=limit,
        )
        return success(records, count=len(records))

    @app.route("/api/attendance/student/<student_id>/stats", methods=["GET"], endpoint="attendance_student_stats")
    @roles_required(*STAFF)
    def student_stats(student_id: str):
        academic_year = request.args.get("academicYear")
        if academic_year:
            return success(service.get_academic_year_report(student_id, academic_year))
        return success(service.get_attendance_stats(student_id))

    @app.route("/api/attendance/report/<class_id>/<section>", methods=["GET"], endpoint="attendance_monthly_report")
    @roles_required(*STAFF)
    def monthly_report(class_id: str, section: str):
        today = now_local().date()
        month = require_int_range(request.args.get("month", today.month), "Month", 1, 12)
        year = require_int_range(request.args.get("year", today.year), "Year", 2000, 2100)
        report = service.get_monthly_report(class_id, section, month, year)
        return success({
            "month": month,
            "year": year,
            "classId": class_id,
            "section": section.upper(),
            "report": report,
        })

    @app.route("/api/attendance/range", methods=["GET"], endpoint="attendance_range_report")
    @roles_required(*STAFF)
    def range_report():
        start = _optional_date("startDate")
        end = _optional_date("endDate")
        if not start or not end:
            raise ValidationError("startDate and endDate are required")
        rows = service.get_date_range_report(
            start=start,
            end=end,
            class_id=request.args.get("classId") or None,
            section=request.args.get("section") or None,
        )
        return success(rows, count=len(rows))

    @app.route("/api/attendance/summary/today", methods=["GET"], endpoint="attendance_today_summary")
    @roles_required(*STAFF)
    def today_summary():
        return success(service.get_today_summary())

    @app.route("/api/attendance/<record_id>", methods=["PUT"], endpoint="attendance_update")
    @roles_required(*STAFF)
    def update_attendance(record_id: str):
        body = request.get_json(silent=True) or {}
        record = service.update_attendance(
            record_id,
            marked_by=current_account(),
            status=body.get("status"),
            remarks=body.get("remarks"),
            late_minutes=body.get("lateMinutes"),
            context=request_context(),
        )
        return success(record, message="Attendance updated successfully")
