"""Tests for the student roster."""
import pytest

from cabinet_planner.errors import NotFoundError, ValidationError
from cabinet_planner.progress import get_progress, set_completed
from cabinet_planner.schedule import assign, get_cell, get_schedule
from cabinet_planner.students import (
    add_student, delete_student, get_student, list_students, update_student,
)


def test_add_student_trims_and_coerces(db):
    s = add_student(db, "  Ana ", " 3a ", "2")
    assert s.name == "Ana"
    assert s.grade == "3a"
    assert s.plan_type == 2
    assert get_student(db, s.id) == s


def test_add_student_requires_name_and_grade(db):
    with pytest.raises(ValidationError):
        add_student(db, "", "3a", 1)
    with pytest.raises(ValidationError):
        add_student(db, "Ana", "   ", 1)
    assert list_students(db) == []


@pytest.mark.parametrize("plan_type", [0, 7, "x", None])
def test_add_student_rejects_bad_plan_type(db, plan_type):
    with pytest.raises(ValidationError):
        add_student(db, "Ana", "3a", plan_type)


def test_list_students_keeps_insertion_order(db):
    names = ["Zoran", "Ana", "Marko"]
    for n in names:
        add_student(db, n, "1", 1)
    assert [s.name for s in list_students(db)] == names


def test_update_student(db):
    s = add_student(db, "Ana", "3a", 1, notes="likes drawing")
    updated = update_student(db, s.id, "Ana M", "4a", 3)
    assert updated.plan_type == 3
    assert updated.notes == "likes drawing"
    assert get_student(db, s.id).grade == "4a"


def test_update_missing_student(db):
    with pytest.raises(NotFoundError):
        update_student(db, 999, "Ana", "3a", 1)


def test_get_missing_student(db):
    with pytest.raises(NotFoundError):
        get_student(db, 42)


def test_delete_student_cascades(db):
    a = add_student(db, "Ana", "3a", 1)
    b = add_student(db, "Boris", "2b", 1)
    assign(db, "monday", 0, [a.id, b.id])
    assign(db, "friday", 4, [a.id])
    set_completed(db, a.id, 0, True)
    set_completed(db, a.id, 2, True)

    delete_student(db, a.id)

    schedule = get_schedule(db)
    for cells in schedule.values():
        for cell in cells:
            assert a.id not in cell
    assert get_cell(db, "monday", 0) == [b.id]
    assert get_progress(db, a.id) == {}
    assert [s.id for s in list_students(db)] == [b.id]


def test_delete_missing_student(db):
    with pytest.raises(NotFoundError):
        delete_student(db, 5)
