from __future__ import annotations

import pytest

from school_mis.core.exceptions import DuplicateEntry, NotFound, ValidationError


def _create(world, admin, teacher, **overrides):
    payload = dict(
        class_name="7",
        sections=["a", "b", "A"],
        class_teacher_id=teacher.account_id,
        academic_year="2024-2025",
        capacity=35,
    )
    payload.update(overrides)
    return world.container.class_service.create_class(admin, **payload)


def test_create_class_assigns_class_teacher_to_first_section(world, admin):
    teacher = world.add_teacher("ct@school.test", full_name="Class Teacher")

    view = _create(world, admin, teacher)

    assert view["sections"] == ["A", "B"]
    assert view["classTeacher"]["fullName"] == "Class Teacher"
    (assignment,) = world.teachers.get(teacher.account_id).assigned_classes
    assert (assignment.class_id, assignment.section, assignment.subject) == (view["id"], "A", "General")


def test_same_class_name_per_year_is_unique(world, admin):
    teacher = world.add_teacher("ct@school.test")
    _create(world, admin, teacher)

    with pytest.raises(DuplicateEntry):
        _create(world, admin, teacher)
    _create(world, admin, teacher, academic_year="2025-2026")


def test_create_class_validation(world, admin):
    teacher = world.add_teacher("ct@school.test")

    with pytest.raises(ValidationError):
        _create(world, admin, teacher, class_name="13")
    with pytest.raises(ValidationError):
        _create(world, admin, teacher, sections=["A", "B", "C", "D", "E"])
    with pytest.raises(ValidationError):
        _create(world, admin, teacher, capacity=61)
    with pytest.raises(ValidationError):
        _create(world, admin, teacher, academic_year="2024")
    with pytest.raises(NotFound):
        _create(world, admin, teacher, class_teacher_id=admin.account_id)


def test_delete_class_clears_teacher_assignments(world, admin):
    teacher = world.add_teacher("ct@school.test")
    view = _create(world, admin, teacher)

    world.container.class_service.delete_class(admin, view["id"])

    assert world.classes.get_by_id(view["id"]) is None
    assert world.teachers.get(teacher.account_id).assigned_classes == ()


def test_update_class_rejects_name_clash(world, admin):
    teacher = world.add_teacher("ct@school.test")
    _create(world, admin, teacher, class_name="7")
    other = _create(world, admin, teacher, class_name="8")

    with pytest.raises(DuplicateEntry):
        world.container.class_service.update_class(admin, other["id"], {"className": "7"})

    updated = world.container.class_service.update_class(admin, other["id"], {"capacity": 50})
    assert updated["capacity"] == 50


def test_class_stats_counts_active_students_per_section(world, admin):
    school_class = world.add_class(sections=("A", "B"))
    world.add_student(school_class, section="A", roll_number=1)
    world.add_student(school_class, section="B", roll_number=1)
    world.add_student(school_class, section="B", roll_number=2)
    world.add_student(school_class, section="B", roll_number=3, is_active=False)

    stats = world.container.class_service.class_stats(school_class.class_id)

    assert stats["totalStudents"] == 3
    assert stats["studentsBySection"] == {"A": 1, "B": 2}
