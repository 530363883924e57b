"""Tests for progress tracking and monthly rollups."""
from datetime import date

import pytest

from cabinet_planner.errors import NotFoundError, ValidationError
from cabinet_planner.models import ProgressStatus, progress_status
from cabinet_planner.plans import delete_activity, replace_activities
from cabinet_planner.progress import (
    get_progress, get_record, monthly_summary, normalize_date, parse_progress_date,
    set_completed, set_date, set_time, student_stats,
)
from cabinet_planner.snapshot import import_snapshot
from cabinet_planner.students import add_student


@pytest.fixture
def student(db):
    replace_activities(db, 1, ["Say hello", "Count to ten", "Name colours"])
    return add_student(db, "Ana", "3a", 1)


def test_set_completed_stamps_today(db, student):
    record = set_completed(db, student.id, 0, True, today=date(2024, 3, 5))
    assert record.completed is True
    assert record.date == "05.03.2024"
    assert record.time == ""
    assert get_record(db, student.id, 0) == record


def test_set_completed_false_deletes_record(db, student):
    set_completed(db, student.id, 2, True)
    set_completed(db, student.id, 2, False)
    assert 2 not in get_progress(db, student.id)
    set_completed(db, student.id, 2, False)  # already absent
    assert get_progress(db, student.id) == {}


def test_set_date_creates_pending_record(db, student):
    record = set_date(db, student.id, 1, "2024-04-10")
    assert record.date == "10.04.2024"
    assert record.completed is False
    assert progress_status(get_record(db, student.id, 1)) is ProgressStatus.SCHEDULED


def test_set_time_completes_when_date_present(db, student):
    set_date(db, student.id, 1, date(2024, 4, 10))
    record = set_time(db, student.id, 1, "08:00 - 08:20")
    assert record.completed is True
    assert record.date == "10.04.2024"
    assert record.time == "08:00 - 08:20"


def test_set_time_without_date_stays_incomplete(db, student):
    record = set_time(db, student.id, 0, "08:45 - 09:05")
    assert record.completed is False
    assert record.time == "08:45 - 09:05"
    set_date(db, student.id, 0, "01.02.2024")
    # the date alone does not flip completion; only a time write does
    assert get_record(db, student.id, 0).completed is False


def test_empty_values_are_ignored(db, student):
    assert set_date(db, student.id, 0, "") is None
    assert set_time(db, student.id, 0, "  ") is None
    assert get_progress(db, student.id) == {}


def test_unknown_student_rejected(db):
    with pytest.raises(NotFoundError):
        set_completed(db, 77, 0, True)
    with pytest.raises(NotFoundError):
        set_time(db, 77, 0, "08:00 - 08:20")


def test_bad_index_and_date_rejected(db, student):
    with pytest.raises(ValidationError):
        set_completed(db, student.id, -1, True)
    with pytest.raises(ValidationError):
        set_completed(db, student.id, True, True)
    assert get_progress(db, student.id) == {}
    with pytest.raises(ValidationError):
        set_date(db, student.id, 0, "not a date")


def test_parse_progress_date():
    assert parse_progress_date("05.03.2024") == date(2024, 3, 5)
    assert parse_progress_date("5.3.2024 г.") == date(2024, 3, 5)
    assert parse_progress_date("") is None
    assert parse_progress_date("2024-03-05") is None
    assert parse_progress_date("31.02.2024") is None


def test_normalize_date_formats():
    assert normalize_date("2024-03-05") == "05.03.2024"
    assert normalize_date("5.3.2024") == "05.03.2024"
    assert normalize_date(date(2024, 12, 1)) == "01.12.2024"


def test_monthly_summary_scenario(db, student):
    import_snapshot(db, {"studentProgress": {str(student.id): {
        "0": {"completed": True, "date": "05.03.2024", "time": "08:00-08:20"},
        "1": {"completed": True, "date": "10.04.2024"},
    }}})
    [entry] = monthly_summary(db, 2024, 3)
    assert entry["student"].id == student.id
    assert entry["total_activities"] == 3
    assert entry["completed_in_month"] == [
        {"index": 0, "text": "Say hello", "date": "05.03.2024", "time": "08:00-08:20"},
    ]
    assert entry["percentage"] == 33


def test_monthly_summary_sorted_by_date(db, student):
    set_date(db, student.id, 0, "2024-03-20")
    set_date(db, student.id, 1, "2024-03-02")
    set_date(db, student.id, 2, "2024-03-11")
    entry = monthly_summary(db, 2024, 3)[0]
    assert [i["index"] for i in entry["completed_in_month"]] == [1, 2, 0]
    assert entry["percentage"] == 100


def test_monthly_summary_skips_orphaned_indices(db, student):
    set_date(db, student.id, 2, "2024-03-20")
    set_date(db, student.id, 0, "2024-03-01")
    delete_activity(db, 1, 1)
    entry = monthly_summary(db, 2024, 3)[0]
    # index 2 is now past the end of the two-activity plan
    assert [i["index"] for i in entry["completed_in_month"]] == [0]
    assert entry["total_activities"] == 2
    assert entry["percentage"] == 50


def test_monthly_summary_empty_plan(db):
    s = add_student(db, "Boris", "2b", 6)
    [entry] = monthly_summary(db, 2024, 1)
    assert entry["student"].id == s.id
    assert entry["percentage"] == 0
    assert entry["completed_in_month"] == []


def test_monthly_summary_bad_month(db):
    with pytest.raises(ValidationError):
        monthly_summary(db, 2024, 13)


def test_student_stats(db, student):
    set_completed(db, student.id, 0, True)
    set_date(db, student.id, 2, "2024-01-01")
    stats = student_stats(db, student.id)
    assert stats == {
        "student_id": student.id,
        "total_activities": 3,
        "completed_activities": 2,
        "percentage": 67,
        "remaining": 1,
    }


def test_student_stats_reflects_plan_changes(db, student):
    set_completed(db, student.id, 0, True)
    replace_activities(db, 1, ["only one"])
    stats = student_stats(db, student.id)
    assert stats["total_activities"] == 1
    assert stats["percentage"] == 100
    assert stats["remaining"] == 0


def test_student_stats_missing_student(db):
    with pytest.raises(NotFoundError):
        student_stats(db, 404)


def test_monthly_summary_coerces_numeric_strings(db, student):
    set_date(db, student.id, 0, "2024-03-05")
    [entry] = monthly_summary(db, "2024", "3")
    assert [i["index"] for i in entry["completed_in_month"]] == [0]


@pytest.mark.parametrize("year,month", [("x", 3), (2024, "x"), (2024, None), (2024, True)])
def test_monthly_summary_rejects_non_numeric(db, year, month):
    with pytest.raises(ValidationError):
        monthly_summary(db, year, month)
