"""Whole-dataset export and import as a single JSON document.

Document shape::

    {
      "students": [{"id", "name", "grade", "planType", "notes"}],
      "schedule": {"monday": [[ids] x5], ...},
      "planTemplates": {"1": [texts], ..., "6": [texts]},
      "studentProgress": {"<id>": {"<index>": {"completed", "date", "time"}}}
    }

Each top-level key is optional on import. A key that is present replaces
that collection; a missing one leaves it alone. planTemplates is replaced
as a whole: plans absent from it are emptied.
"""
import json
import logging
from datetime import datetime
from pathlib import Path

from cabinet_planner.db import transaction
from cabinet_planner.errors import ParseError
from cabinet_planner.models import DAYS, PLAN_TYPES, TIME_SLOTS
from cabinet_planner.plans import clean_activities, get_all_plans
from cabinet_planner.progress import get_progress
from cabinet_planner.schedule import get_schedule, write_cell
from cabinet_planner.students import list_students

logger = logging.getLogger(__name__)

COLLECTIONS = ("students", "schedule", "planTemplates", "studentProgress")


def export_snapshot(db_path: str) -> dict:
    students = list_students(db_path)
    progress = {}
    for s in students:
        records = get_progress(db_path, s.id)
        progress[str(s.id)] = {
            str(idx): {"completed": r.completed, "date": r.date, "time": r.time}
            for idx, r in records.items()
        }
    return {
        "students": [
            {"id": s.id, "name": s.name, "grade": s.grade, "planType": s.plan_type, "notes": s.notes}
            for s in students
        ],
        "schedule": get_schedule(db_path),
        "planTemplates": {str(k): v for k, v in get_all_plans(db_path).items()},
        "studentProgress": progress,
    }


# -- validation -------------------------------------------------------------

def _as_int(value, what: str) -> int:
    if isinstance(value, bool):
        raise ParseError(f"{what} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParseError(f"{what} must be an integer, got {value!r}") from None


def _parse_students(data) -> list[dict]:
    if not isinstance(data, list):
        raise ParseError("'students' must be a list")
    students, seen = [], set()
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ParseError(f"students[{i}] must be an object")
        student_id = _as_int(item.get("id"), f"students[{i}].id")
        if student_id in seen:
            raise ParseError(f"Duplicate student id {student_id}")
        seen.add(student_id)
        name = str(item.get("name") or "").strip()
        grade = str(item.get("grade") or "").strip()
        if not name or not grade:
            raise ParseError(f"students[{i}] needs a name and a grade")
        plan_type = _as_int(item.get("planType", item.get("plan_type")), f"students[{i}].planType")
        if plan_type not in PLAN_TYPES:
            raise ParseError(f"students[{i}].planType must be between 1 and 6")
        students.append({
            "id": student_id, "name": name, "grade": grade,
            "plan_type": plan_type, "notes": str(item.get("notes") or ""),
        })
    return students


def _parse_schedule(data) -> dict[str, list[list[int]]]:
    if not isinstance(data, dict):
        raise ParseError("'schedule' must be an object keyed by day")
    schedule = {}
    for day in DAYS:
        cells = data.get(day, [[] for _ in TIME_SLOTS])
        if not isinstance(cells, list) or len(cells) != len(TIME_SLOTS):
            raise ParseError(f"schedule.{day} must be a list of {len(TIME_SLOTS)} slots")
        parsed = []
        for slot, cell in enumerate(cells):
            if not isinstance(cell, list):
                raise ParseError(f"schedule.{day}[{slot}] must be a list")
            ids = [_as_int(sid, f"schedule.{day}[{slot}] entry") for sid in cell]
            parsed.append(list(dict.fromkeys(ids)))
        schedule[day] = parsed
    unknown = set(data) - set(DAYS)
    if unknown:
        raise ParseError(f"Unknown schedule days: {', '.join(sorted(unknown))}")
    return schedule


def _parse_plans(data) -> dict[int, list[str]]:
    if not isinstance(data, dict):
        raise ParseError("'planTemplates' must be an object keyed by plan type")
    # plans the document leaves out are emptied
    plans = {plan_type: [] for plan_type in PLAN_TYPES}
    for key, texts in data.items():
        plan_type = _as_int(key, "planTemplates key")
        if plan_type not in PLAN_TYPES:
            raise ParseError(f"planTemplates key must be between 1 and 6, got {key!r}")
        if not isinstance(texts, list):
            raise ParseError(f"planTemplates.{key} must be a list")
        plans[plan_type] = clean_activities(texts)
    return plans


def _parse_progress(data) -> dict[int, dict[int, dict]]:
    if not isinstance(data, dict):
        raise ParseError("'studentProgress' must be an object keyed by student id")
    progress = {}
    for sid, entries in data.items():
        student_id = _as_int(sid, "studentProgress key")
        if not isinstance(entries, dict):
            raise ParseError(f"studentProgress.{sid} must be an object")
        records = {}
        for idx, entry in entries.items():
            index = _as_int(idx, f"studentProgress.{sid} key")
            if index < 0 or not isinstance(entry, dict):
                raise ParseError(f"studentProgress.{sid}.{idx} is malformed")
            completed = entry.get("completed")
            if completed is None:
                completed = False
            if not isinstance(completed, bool):
                raise ParseError(f"studentProgress.{sid}.{idx}.completed must be true or false")
            records[index] = {
                "completed": completed,
                "date": str(entry.get("date") or ""),
                "time": str(entry.get("time") or ""),
            }
        progress[student_id] = records
    return progress


def parse_snapshot(doc) -> dict:
    """Validate a snapshot document, returning only the collections it carries."""
    if not isinstance(doc, dict):
        raise ParseError("Snapshot must be a JSON object")
    parsers = {
        "students": _parse_students,
        "schedule": _parse_schedule,
        "planTemplates": _parse_plans,
        "studentProgress": _parse_progress,
    }
    return {key: parsers[key](doc[key]) for key in COLLECTIONS if doc.get(key) is not None}


# -- import -----------------------------------------------------------------

def import_snapshot(db_path: str, doc) -> list[str]:
    """Replace every collection present in doc. All or nothing.

    Returns the names of the collections that were replaced.
    """
    parsed = parse_snapshot(doc)
    with transaction(db_path) as conn:
        if "students" in parsed:
            now = datetime.now().isoformat()
            keep = [s["id"] for s in parsed["students"]]
            stale = [
                r["id"] for r in conn.execute("SELECT id FROM students").fetchall() if r["id"] not in keep
            ]
            for student_id in stale:
                conn.execute("DELETE FROM student_progress WHERE student_id = ?", (student_id,))
                conn.execute("DELETE FROM schedule_entries WHERE student_id = ?", (student_id,))
                conn.execute("DELETE FROM students WHERE id = ?", (student_id,))
            for position, s in enumerate(parsed["students"]):
                conn.execute(
                    """INSERT INTO students (id, name, grade, plan_type, notes, roster_position, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name, grade = excluded.grade, plan_type = excluded.plan_type,
                        notes = excluded.notes, roster_position = excluded.roster_position""",
                    (s["id"], s["name"], s["grade"], s["plan_type"], s["notes"], position, now),
                )

        known = {r["id"] for r in conn.execute("SELECT id FROM students").fetchall()}

        if "planTemplates" in parsed:
            for plan_type, activities in parsed["planTemplates"].items():
                conn.execute("DELETE FROM plan_activities WHERE plan_type = ?", (plan_type,))
                conn.executemany(
                    "INSERT INTO plan_activities (plan_type, activity_text, order_index, created_at) VALUES (?, ?, ?, ?)",
                    [(plan_type, text, i, datetime.now().isoformat()) for i, text in enumerate(activities)],
                )

        if "schedule" in parsed:
            for day, cells in parsed["schedule"].items():
                for slot, ids in enumerate(cells):
                    members = [sid for sid in ids if sid in known]
                    if len(members) != len(ids):
                        logger.debug("Dropped unknown students from %s/%s on import", day, slot)
                    write_cell(conn, day, slot, members)

        if "studentProgress" in parsed:
            conn.execute("DELETE FROM student_progress")
            for student_id, records in parsed["studentProgress"].items():
                if student_id not in known:
                    logger.debug("Dropped progress for unknown student %s on import", student_id)
                    continue
                conn.executemany(
                    """INSERT INTO student_progress
                    (student_id, activity_index, completed, completion_date, completion_time, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)""",
                    [
                        (student_id, idx, int(r["completed"]), r["date"], r["time"], datetime.now().isoformat())
                        for idx, r in records.items()
                    ],
                )
    logger.info("Imported snapshot collections: %s", ", ".join(parsed) or "none")
    return list(parsed)


# -- persistence ------------------------------------------------------------

def save_snapshot(db_path: str, file_path: str) -> Path:
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(export_snapshot(db_path), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Exported snapshot to %s", path)
    return path


def read_snapshot(file_path: str) -> dict:
    try:
        return json.loads(Path(file_path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ParseError(f"Could not read snapshot {file_path}: {e}") from e


def load_snapshot(db_path: str, file_path: str) -> list[str]:
    return import_snapshot(db_path, read_snapshot(file_path))
