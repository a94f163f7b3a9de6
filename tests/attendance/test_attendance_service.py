from __future__ import annotations

from datetime import date, timedelta

import pytest

from school_mis.attendance.model import BulkEntry
from school_mis.core.enums import AttendanceStatus, EventType
from school_mis.core.exceptions import NotFound, ValidationError


@pytest.fixture
def school(world):
    teacher = world.add_teacher("marker@school.test")
    school_class = world.add_class(teacher=teacher)
    students = [
        world.add_student(school_class, roll_number=n, full_name=f"Student {n}", parent_email=f"p{n}@home.test")
        for n in (1, 2, 3, 4)
    ]
    return teacher, school_class, students


def _mark(world, teacher, school_class, student, status, day, now, **kwargs):
    return world.container.attendance_service.mark_attendance(
        student_id=student.account_id,
        class_id=school_class.class_id,
        section="a",
        day=day,
        status=status,
        marked_by=teacher,
        now=now,
        **kwargs,
    )


def test_remarking_same_day_converges_on_one_record(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    day = fixed_now.date()

    first = _mark(world, teacher, school_class, student, "present", day, fixed_now)
    second = _mark(world, teacher, school_class, student, "late", fixed_now, fixed_now, late_minutes=15)

    assert first.record_id == second.record_id
    assert len(world.attendance.items) == 1
    assert second.status == AttendanceStatus.LATE
    assert second.late_minutes == 15
    assert second.section == "A"

    events = [e.event for e in world.audit.events if e.resource == "attendance"]
    assert events == [EventType.CREATE, EventType.UPDATE]


def test_absence_sends_exactly_one_parent_alert(world, school, fixed_now):
    teacher, school_class, (student, *_) = school

    _mark(world, teacher, school_class, student, "absent", fixed_now.date(), fixed_now)

    assert len(world.mailer.absentee_alerts) == 1
    alert = world.mailer.absentee_alerts[0]
    assert alert["parent_email"] == "p1@home.test"
    assert alert["student_name"] == "Student 1"
    assert alert["class_name"] == school_class.class_name


def test_present_sends_no_alert(world, school, fixed_now):
    teacher, school_class, (student, *_) = school

    _mark(world, teacher, school_class, student, "present", fixed_now.date(), fixed_now)

    assert world.mailer.absentee_alerts == []


def test_mailer_failure_does_not_fail_marking(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    world.mailer.fail_with = ConnectionError("smtp down")

    record = _mark(world, teacher, school_class, student, "absent", fixed_now.date(), fixed_now)

    assert record.status == AttendanceStatus.ABSENT
    assert len(world.attendance.items) == 1


@pytest.mark.parametrize("late_minutes", [-1, 241, "soon"])
def test_late_minutes_out_of_bounds(world, school, fixed_now, late_minutes):
    teacher, school_class, (student, *_) = school

    with pytest.raises(ValidationError):
        _mark(world, teacher, school_class, student, "late", fixed_now.date(), fixed_now, late_minutes=late_minutes)


def test_late_minutes_bounds_are_inclusive(world, school, fixed_now):
    teacher, school_class, (a, b, *_) = school

    assert _mark(world, teacher, school_class, a, "late", fixed_now.date(), fixed_now, late_minutes=0).late_minutes == 0
    assert _mark(world, teacher, school_class, b, "late", fixed_now.date(), fixed_now, late_minutes=240).late_minutes == 240


def test_rejects_unknown_status_and_long_remarks(world, school, fixed_now):
    teacher, school_class, (student, *_) = school

    with pytest.raises(ValidationError):
        _mark(world, teacher, school_class, student, "sick", fixed_now.date(), fixed_now)
    with pytest.raises(ValidationError):
        _mark(world, teacher, school_class, student, "present", fixed_now.date(), fixed_now, remarks="x" * 201)


def test_unknown_student_or_class(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    service = world.container.attendance_service

    with pytest.raises(NotFound):
        service.mark_attendance(
            student_id="missing", class_id=school_class.class_id, section="A",
            day=fixed_now.date(), status="present", marked_by=teacher, now=fixed_now,
        )
    with pytest.raises(NotFound):
        service.mark_attendance(
            student_id=student.account_id, class_id="missing", section="A",
            day=fixed_now.date(), status="present", marked_by=teacher, now=fixed_now,
        )
    # a teacher account is not a student
    with pytest.raises(NotFound):
        service.mark_attendance(
            student_id=teacher.account_id, class_id=school_class.class_id, section="A",
            day=fixed_now.date(), status="present", marked_by=teacher, now=fixed_now,
        )
    assert world.attendance.items == {}


def test_bulk_marks_valid_entries_and_collects_failures(world, school, fixed_now):
    teacher, school_class, students = school
    ids = [s.account_id for s in students]
    # the failing entry sits mid-batch; the entries after it must still land
    entries = [BulkEntry(student_id=sid, status="present") for sid in ids[:2]]
    entries.append(BulkEntry(student_id="missing", status="present"))
    entries += [BulkEntry(student_id=sid, status="absent") for sid in ids[2:]]

    result = world.container.attendance_service.mark_bulk_attendance(
        entries,
        class_id=school_class.class_id,
        section="A",
        day=fixed_now.date(),
        marked_by=teacher,
        now=fixed_now,
    )

    assert [r.student_id for r in result.results] == ids
    assert [r.status for r in result.results[2:]] == [AttendanceStatus.ABSENT, AttendanceStatus.ABSENT]
    assert result.has_errors
    assert result.errors == ({"studentId": "missing", "error": "Student not found: missing"},)
    assert len(world.attendance.items) == 4


def test_update_to_absent_notifies_and_audits_transition(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    record = _mark(world, teacher, school_class, student, "present", fixed_now.date(), fixed_now)

    updated = world.container.attendance_service.update_attendance(
        record.record_id, marked_by=teacher, status="absent", remarks="left early", now=fixed_now
    )

    assert updated.status == AttendanceStatus.ABSENT
    assert updated.remarks == "left early"
    assert len(world.mailer.absentee_alerts) == 1
    last = world.audit.events[-1]
    assert last.changes == {"status": {"from": "present", "to": "absent"}}


def test_update_missing_record(world, school, fixed_now):
    teacher, *_ = school
    with pytest.raises(NotFound):
        world.container.attendance_service.update_attendance("missing", marked_by=teacher, status="present")


def test_stats_empty_history_is_zero_percent(world, school):
    _, _, (student, *_) = school

    stats = world.container.attendance_service.get_attendance_stats(student.account_id)

    assert stats.total_days == 0
    assert stats.attendance_percentage == 0


def test_stats_percentage_counts_only_present(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    statuses = ["present", "present", "present", "absent"]
    for offset, status in enumerate(statuses):
        _mark(world, teacher, school_class, student, status, fixed_now.date() - timedelta(days=offset), fixed_now)

    stats = world.container.attendance_service.get_attendance_stats(student.account_id)

    assert (stats.total_days, stats.present_days, stats.absent_days) == (4, 3, 1)
    assert stats.attendance_percentage == 75


def test_late_does_not_count_as_present(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    _mark(world, teacher, school_class, student, "present", fixed_now.date(), fixed_now)
    _mark(world, teacher, school_class, student, "late", fixed_now.date() - timedelta(days=1), fixed_now)
    _mark(world, teacher, school_class, student, "leave", fixed_now.date() - timedelta(days=2), fixed_now)

    stats = world.container.attendance_service.get_attendance_stats(student.account_id)

    assert stats.attendance_percentage == 33


def test_class_attendance_lists_roster_with_gaps(world, school, fixed_now):
    teacher, school_class, (s1, s2, s3, s4) = school
    _mark(world, teacher, school_class, s2, "absent", fixed_now.date(), fixed_now)

    rows = world.container.attendance_service.get_class_attendance(school_class.class_id, "a", fixed_now.date())

    assert [r.roll_number for r in rows] == [1, 2, 3, 4]
    assert rows[1].status == AttendanceStatus.ABSENT
    assert rows[0].status is None


def test_monthly_report_groups_by_student(world, school, fixed_now):
    teacher, school_class, (s1, s2, *_) = school
    _mark(world, teacher, school_class, s2, "present", date(2025, 1, 2), fixed_now)
    _mark(world, teacher, school_class, s1, "absent", date(2025, 1, 3), fixed_now)
    _mark(world, teacher, school_class, s1, "present", date(2025, 1, 31), fixed_now)
    _mark(world, teacher, school_class, s1, "present", date(2025, 2, 1), fixed_now)

    report = world.container.attendance_service.get_monthly_report(school_class.class_id, "A", 1, 2025)

    assert [row.roll_number for row in report] == [1, 2]
    assert report[0].stats.total_days == 2
    assert report[0].stats.attendance_percentage == 50
    assert [d["date"] for d in report[0].days] == [date(2025, 1, 3), date(2025, 1, 31)]


def test_academic_year_report_spans_april_to_march(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    for day in (date(2024, 3, 31), date(2024, 4, 1), date(2025, 3, 31), date(2025, 4, 1)):
        _mark(world, teacher, school_class, student, "present", day, fixed_now)

    report = world.container.attendance_service.get_academic_year_report(student.account_id, "2024-2025")

    assert report["startDate"] == date(2024, 4, 1)
    assert report["endDate"] == date(2025, 3, 31)
    assert report["stats"].total_days == 2


def test_academic_year_format_is_validated(world, school):
    _, _, (student, *_) = school
    with pytest.raises(ValidationError):
        world.container.attendance_service.get_academic_year_report(student.account_id, "2024-2026")


def test_date_range_report_counts_per_day(world, school, fixed_now):
    teacher, school_class, (s1, s2, *_) = school
    _mark(world, teacher, school_class, s1, "present", date(2025, 1, 6), fixed_now)
    _mark(world, teacher, school_class, s2, "absent", date(2025, 1, 6), fixed_now)
    _mark(world, teacher, school_class, s1, "late", date(2025, 1, 7), fixed_now)

    rows = world.container.attendance_service.get_date_range_report(
        start=date(2025, 1, 6), end=date(2025, 1, 7), class_id=school_class.class_id
    )

    assert [r["date"] for r in rows] == [date(2025, 1, 6), date(2025, 1, 7)]
    assert rows[0]["present"] == 1 and rows[0]["absent"] == 1
    assert rows[0]["attendancePercentage"] == 50
    assert rows[1]["late"] == 1

    with pytest.raises(ValidationError):
        world.container.attendance_service.get_date_range_report(start=date(2025, 1, 7), end=date(2025, 1, 6))


def test_today_summary(world, school, fixed_now):
    teacher, school_class, (s1, s2, s3, _) = school
    today = fixed_now.date()
    _mark(world, teacher, school_class, s1, "present", today, fixed_now)
    _mark(world, teacher, school_class, s2, "absent", today, fixed_now)
    _mark(world, teacher, school_class, s3, "present", today - timedelta(days=1), fixed_now)

    summary = world.container.attendance_service.get_today_summary(today=today)

    assert summary == {"present": 1, "absent": 1, "late": 0, "leave": 0, "total": 2}


def test_student_history_is_newest_first_and_limited(world, school, fixed_now):
    teacher, school_class, (student, *_) = school
    for offset in range(5):
        _mark(world, teacher, school_class, student, "present", fixed_now.date() - timedelta(days=offset), fixed_now)

    records = world.container.attendance_service.get_student_attendance(student.account_id, limit=3)

    assert [r.day for r in records] == [fixed_now.date() - timedelta(days=n) for n in range(3)]
