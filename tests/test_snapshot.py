"""Tests for whole-dataset export and import."""
import json

import pytest

from cabinet_planner.errors import ParseError
from cabinet_planner.plans import list_activities, replace_activities
from cabinet_planner.progress import get_progress, set_completed, set_date, set_time
from cabinet_planner.schedule import assign, get_cell
from cabinet_planner.snapshot import (
    export_snapshot, import_snapshot, load_snapshot, read_snapshot, save_snapshot,
)
from cabinet_planner.students import add_student, list_students


@pytest.fixture
def populated(db):
    replace_activities(db, 1, ["Say hello", "Count to ten"])
    replace_activities(db, 4, ["Breathing"])
    a = add_student(db, "Ana", "3a", 1, notes="quiet")
    b = add_student(db, "Boris", "2b", 4)
    assign(db, "monday", 0, [b.id, a.id])
    assign(db, "thursday", 3, [a.id])
    set_completed(db, a.id, 0, True)
    set_date(db, a.id, 1, "2024-03-10")
    set_time(db, b.id, 0, "08:00 - 08:20")
    return db


def test_export_shape(populated):
    doc = export_snapshot(populated)
    assert set(doc) == {"students", "schedule", "planTemplates", "studentProgress"}
    assert list(doc["planTemplates"]) == ["1", "2", "3", "4", "5", "6"]
    assert doc["planTemplates"]["1"] == ["Say hello", "Count to ten"]
    assert doc["students"][0]["planType"] == 1
    assert doc["students"][0]["notes"] == "quiet"
    a_id = str(doc["students"][0]["id"])
    assert doc["studentProgress"][a_id]["1"] == {"completed": False, "date": "10.03.2024", "time": ""}
    assert len(doc["schedule"]["monday"]) == 5
    json.dumps(doc)  # serializable


def test_round_trip_is_noop(populated):
    before = export_snapshot(populated)
    import_snapshot(populated, before)
    assert export_snapshot(populated) == before


def test_import_into_fresh_store(populated, tmp_path):
    from cabinet_planner.db import init_db
    other = str(tmp_path / "other.db")
    init_db(other)
    doc = export_snapshot(populated)
    import_snapshot(other, doc)
    assert export_snapshot(other) == doc


def test_partial_import_leaves_other_collections(populated):
    before = export_snapshot(populated)
    replaced = import_snapshot(populated, {"planTemplates": {"2": ["New", "  ", "Plan "]}})
    assert replaced == ["planTemplates"]
    assert list_activities(populated, 2) == ["New", "Plan"]
    after = export_snapshot(populated)
    assert after["students"] == before["students"]
    assert after["schedule"] == before["schedule"]
    assert after["studentProgress"] == before["studentProgress"]


def test_import_original_format(db):
    doc = {
        "students": [
            {"id": 1700000000001, "name": "Ana", "grade": "3a", "planType": "2"},
            {"id": 1700000000002, "name": "Boris", "grade": "1b", "planType": "1"},
        ],
        "schedule": {
            "monday": [[1700000000002, 1700000000001], [], [], [], []],
            "tuesday": [[], [], [], [], []],
            "wednesday": [[], [], [], [], []],
            "thursday": [[], [], [], [], []],
            "friday": [[], [], [], [], [99]],
        },
        "planTemplates": {"1": [], "2": ["One"], "3": [], "4": [], "5": [], "6": []},
        "studentProgress": {"1700000000001": {"0": {"completed": True, "date": "1.3.2024", "time": ""}}},
    }
    import_snapshot(db, doc)
    students = list_students(db)
    assert [s.name for s in students] == ["Ana", "Boris"]
    assert students[0].plan_type == 2
    assert get_cell(db, "monday", 0) == [1700000000002, 1700000000001]
    assert get_cell(db, "friday", 4) == []
    assert get_progress(db, 1700000000001)[0].completed is True


def test_replacing_students_drops_dependents(populated):
    doc = export_snapshot(populated)
    keep = doc["students"][1]
    import_snapshot(populated, {"students": [keep]})
    assert [s.id for s in list_students(populated)] == [keep["id"]]
    removed = doc["students"][0]["id"]
    assert get_progress(populated, removed) == {}
    assert removed not in get_cell(populated, "monday", 0)
    assert get_cell(populated, "monday", 0) == [keep["id"]]


def test_import_empty_students_clears_roster(populated):
    import_snapshot(populated, {"students": []})
    assert list_students(populated) == []
    assert get_cell(populated, "monday", 0) == []


@pytest.mark.parametrize("doc", [
    [],
    {"students": {"id": 1}},
    {"students": [{"id": "x", "name": "A", "grade": "1", "planType": 1}]},
    {"students": [{"id": 1, "name": "A", "grade": "1", "planType": 9}]},
    {"students": [{"id": 1, "name": "", "grade": "1", "planType": 1}]},
    {"schedule": {"monday": [[], []]}},
    {"schedule": {"someday": [[], [], [], [], []]}},
    {"planTemplates": {"7": ["x"]}},
    {"planTemplates": {"1": "x"}},
    {"studentProgress": {"1": []}},
    {"studentProgress": {"1": {"0": {"completed": "false", "date": "", "time": ""}}}},
    {"studentProgress": {"1": {"0": {"completed": 1, "date": "", "time": ""}}}},
])
def test_malformed_documents_rejected(populated, doc):
    before = export_snapshot(populated)
    with pytest.raises(ParseError):
        import_snapshot(populated, doc)
    assert export_snapshot(populated) == before


def test_bad_collection_blocks_whole_import(populated):
    before = export_snapshot(populated)
    with pytest.raises(ParseError):
        import_snapshot(populated, {
            "planTemplates": {"1": ["changed"]},
            "schedule": {"monday": "nope"},
        })
    assert export_snapshot(populated) == before


def test_save_and_load(populated, tmp_path, db):
    path = save_snapshot(populated, str(tmp_path / "out" / "data.json"))
    assert path.exists()
    doc = read_snapshot(str(path))
    assert doc == export_snapshot(populated)
    import_snapshot(populated, {"students": []})
    load_snapshot(populated, str(path))
    assert export_snapshot(populated) == doc


def test_load_invalid_json(db, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ParseError):
        load_snapshot(db, str(bad))


def test_load_missing_file(db, tmp_path):
    with pytest.raises(ParseError):
        load_snapshot(db, str(tmp_path / "nope.json"))


def test_plan_templates_replaced_as_a_whole(populated):
    import_snapshot(populated, {"planTemplates": {"2": ["New"]}})
    doc = export_snapshot(populated)
    assert doc["planTemplates"] == {"1": [], "2": ["New"], "3": [], "4": [], "5": [], "6": []}


def test_progress_completed_flag_kept_verbatim(populated):
    a = list_students(populated)[0]
    import_snapshot(populated, {"studentProgress": {str(a.id): {
        "0": {"completed": False, "date": "01.02.2024", "time": ""},
        "1": {"date": "02.02.2024"},
    }}})
    progress = get_progress(populated, a.id)
    assert progress[0].completed is False
    assert progress[1].completed is False
