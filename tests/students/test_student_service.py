from __future__ import annotations

import pytest

from school_mis.core.enums import EventType, NotificationType, Role
from school_mis.core.exceptions import Conflict, DuplicateEntry, NotFound, ValidationError


def _enrol(world, admin, school_class, **overrides):
    payload = dict(
        email="new.student@school.test",
        password="Passw0rd!",
        full_name="New Student",
        class_id=school_class.class_id,
        section="a",
        roll_number=12,
        gender="male",
        parent_name="Guardian",
        parent_email="guardian@home.test",
        parent_phone="9876543210",
    )
    payload.update(overrides)
    return world.container.student_service.create_student(admin, **payload)


def test_create_student_writes_account_profile_audit_and_welcome(world, admin, fixed_now):
    school_class = world.add_class()

    view = _enrol(world, admin, school_class, now=fixed_now)

    account = world.accounts.get_by_email("new.student@school.test")
    assert account.role == Role.STUDENT
    profile = world.students.get(account.account_id)
    assert profile.section == "A"
    assert profile.roll_number == 12
    assert profile.student_code == "STU250001"
    assert view["studentId"] == "STU250001"
    assert "passwordHash" not in view

    (event,) = [e for e in world.audit.events if e.resource == "student"]
    assert event.event == EventType.CREATE
    (welcome,) = world.notifications.list_for_recipient(account.account_id)
    assert welcome.type == NotificationType.SYSTEM


def test_create_student_requires_existing_section(world, admin):
    school_class = world.add_class(sections=("A",))

    with pytest.raises(Conflict):
        _enrol(world, admin, school_class, section="C")
    assert world.accounts.get_by_email("new.student@school.test") is None

def test_failed_profile_write_rolls_back_the_account(world, admin, monkeypatch):
    school_class = world.add_class()

    def clash(profile):
        raise DuplicateEntry("Roll number already taken in this class/section")

    monkeypatch.setattr(world.students, "create", clash)
    with pytest.raises(DuplicateEntry):
        _enrol(world, admin, school_class)
    assert world.accounts.get_by_email("new.student@school.test") is None

    # the email is free again once the profile store recovers
    monkeypatch.undo()
    view = _enrol(world, admin, school_class)
    assert view["email"] == "new.student@school.test"



def test_create_student_rejects_taken_roll_number(world, admin):
    school_class = world.add_class()
    world.add_student(school_class, roll_number=12)

    with pytest.raises(DuplicateEntry):
        _enrol(world, admin, school_class)


def test_create_student_respects_capacity(world, admin):
    school_class = world.add_class(capacity=2)
    world.add_student(school_class, roll_number=1)
    world.add_student(school_class, roll_number=2)

    with pytest.raises(Conflict):
        _enrol(world, admin, school_class)


def test_inactive_students_do_not_use_capacity(world, admin):
    school_class = world.add_class(capacity=2)
    world.add_student(school_class, roll_number=1)
    world.add_student(school_class, roll_number=2, is_active=False)

    view = _enrol(world, admin, school_class)

    assert view["rollNumber"] == 12


def test_create_student_validates_fields(world, admin):
    school_class = world.add_class()

    with pytest.raises(ValidationError):
        _enrol(world, admin, school_class, parent_phone="123")
    with pytest.raises(ValidationError):
        _enrol(world, admin, school_class, roll_number=0)
    with pytest.raises(ValidationError):
        _enrol(world, admin, school_class, password="weak")
    with pytest.raises(NotFound):
        _enrol(world, admin, school_class, class_id="missing")


def test_duplicate_email_is_rejected(world, admin):
    school_class = world.add_class()
    world.add_student(school_class, roll_number=1, email="new.student@school.test")

    with pytest.raises(DuplicateEntry):
        _enrol(world, admin, school_class)


def test_transfer_student_moves_and_notifies(world, admin):
    source = world.add_class(class_name="5")
    target = world.add_class(class_name="6", sections=("A", "B", "C"))
    student = world.add_student(source, roll_number=3)

    view = world.container.student_service.transfer_student(
        admin, student.account_id, class_id=target.class_id, section="c", roll_number=9
    )

    profile = world.students.get(student.account_id)
    assert (profile.class_id, profile.section, profile.roll_number) == (target.class_id, "C", 9)
    assert view["classId"] == target.class_id
    (notice,) = world.notifications.list_for_recipient(student.account_id)
    assert notice.title == "Class Transfer"
    assert world.audit.events[-1].changes["before"]["classId"] == source.class_id


def test_transfer_within_same_section_keeps_own_roll(world, admin):
    school_class = world.add_class()
    student = world.add_student(school_class, roll_number=3)

    view = world.container.student_service.transfer_student(
        admin, student.account_id, class_id=school_class.class_id, section="A", roll_number=3
    )

    assert view["rollNumber"] == 3


def test_update_student_audits_before_and_after(world, admin):
    school_class = world.add_class()
    student = world.add_student(school_class, full_name="Old Name")

    after = world.container.student_service.update_student(
        admin, student.account_id, {"fullName": "New Name", "parentPhone": "9123456780"}
    )

    assert after["fullName"] == "New Name"
    assert after["parentPhone"] == "9123456780"
    changes = world.audit.events[-1].changes
    assert changes["before"]["fullName"] == "Old Name"
    assert changes["after"]["fullName"] == "New Name"


def test_deactivate_student_hides_from_listing(world, admin):
    school_class = world.add_class()
    keep = world.add_student(school_class, roll_number=1)
    drop = world.add_student(school_class, roll_number=2)

    world.container.student_service.deactivate_student(admin, drop.account_id)

    ids = [s["id"] for s in world.container.student_service.list_students(class_id=school_class.class_id)]
    assert ids == [keep.account_id]
    assert world.audit.events[-1].event == EventType.DELETE


def test_search_matches_name_email_or_code(world):
    school_class = world.add_class()
    world.add_student(school_class, roll_number=1, full_name="Asha Rao")
    world.add_student(school_class, roll_number=2, full_name="Vikram Sen")

    rows = world.container.student_service.list_students(query="asha")

    assert [r["fullName"] for r in rows] == ["Asha Rao"]


def test_student_details_bundle_stats_and_history(world, fixed_now):
    teacher = world.add_teacher("t@school.test")
    school_class = world.add_class(teacher=teacher)
    student = world.add_student(school_class)
    world.container.attendance_service.mark_attendance(
        student_id=student.account_id, class_id=school_class.class_id, section="A",
        day=fixed_now.date(), status="present", marked_by=teacher, now=fixed_now,
    )

    details = world.container.student_service.get_student_details(student.account_id)

    assert details["student"]["id"] == student.account_id
    assert details["attendanceStats"].attendance_percentage == 100
    assert len(details["recentAttendance"]) == 1
    assert details["disciplineRecords"] == []


def test_get_student_rejects_non_students(world, admin):
    with pytest.raises(NotFound):
        world.container.student_service.get_student(admin.account_id)
