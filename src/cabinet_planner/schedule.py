"""Weekly schedule grid: 5 days x 5 time slots, each cell a list of students."""
import logging
import sqlite3

from cabinet_planner.db import get_connection, transaction
from cabinet_planner.errors import ConflictError, NotFoundError, ValidationError
from cabinet_planner.models import DAY_LABELS, DAYS, TIME_SLOTS, coerce_int
from cabinet_planner.students import existing_student_ids

logger = logging.getLogger(__name__)


def validate_cell(day: str, slot: int) -> tuple[str, int]:
    day = (day or "").strip().lower()
    if day not in DAYS:
        raise ValidationError(f"Unknown day: {day!r}")
    if isinstance(slot, bool) or not isinstance(slot, int) or not 0 <= slot < len(TIME_SLOTS):
        raise ValidationError(f"Time slot must be between 0 and {len(TIME_SLOTS) - 1}, got {slot!r}")
    return day, slot


def empty_schedule() -> dict[str, list[list[int]]]:
    return {day: [[] for _ in TIME_SLOTS] for day in DAYS}


def get_cell(db_path: str, day: str, slot: int) -> list[int]:
    day, slot = validate_cell(day, slot)
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT student_id FROM schedule_entries WHERE day = ? AND time_slot = ? ORDER BY position, id",
        (day, slot),
    ).fetchall()
    conn.close()
    return [r["student_id"] for r in rows]


def get_schedule(db_path: str) -> dict[str, list[list[int]]]:
    schedule = empty_schedule()
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT day, time_slot, student_id FROM schedule_entries ORDER BY day, time_slot, position, id"
    ).fetchall()
    conn.close()
    for r in rows:
        if r["day"] in schedule:
            schedule[r["day"]][r["time_slot"]].append(r["student_id"])
    return schedule


def student_cells(db_path: str, student_id: int) -> list[tuple[str, int]]:
    """Every (day, slot) the student is placed in, in week order."""
    conn = get_connection(db_path)
    if not existing_student_ids(conn, [student_id]):
        conn.close()
        raise NotFoundError(f"Student {student_id} not found")
    rows = conn.execute(
        "SELECT day, time_slot FROM schedule_entries WHERE student_id = ?", (student_id,)
    ).fetchall()
    conn.close()
    cells = [(r["day"], r["time_slot"]) for r in rows if r["day"] in DAYS]
    return sorted(cells, key=lambda c: (DAYS.index(c[0]), c[1]))


def cell_label(day: str, slot: int) -> str:
    return f"{DAY_LABELS[day]} {TIME_SLOTS[slot].label}"


def write_cell(conn, day: str, slot: int, student_ids: list[int]) -> None:
    conn.execute("DELETE FROM schedule_entries WHERE day = ? AND time_slot = ?", (day, slot))
    conn.executemany(
        "INSERT INTO schedule_entries (day, time_slot, student_id, position) VALUES (?, ?, ?, ?)",
        [(day, slot, sid, pos) for pos, sid in enumerate(student_ids)],
    )


def assign(db_path: str, day: str, slot: int, student_ids) -> list[int]:
    """Replace the full membership of one cell.

    Repeated ids keep their first position. Ids with no matching student are
    dropped. Returns the stored cell.
    """
    day, slot = validate_cell(day, slot)
    requested = list(dict.fromkeys(coerce_int(sid, "Student id") for sid in student_ids))
    with transaction(db_path) as conn:
        known = existing_student_ids(conn, requested)
        members = [sid for sid in requested if sid in known]
        if len(members) != len(requested):
            logger.debug("Dropped unknown students %s from %s/%s",
                         [sid for sid in requested if sid not in known], day, slot)
        write_cell(conn, day, slot, members)
    logger.info("Assigned %d students to %s slot %s", len(members), day, TIME_SLOTS[slot].label)
    return members


def add_to_cell(db_path: str, day: str, slot: int, student_id: int) -> None:
    """Append a single student to a cell."""
    day, slot = validate_cell(day, slot)
    with transaction(db_path) as conn:
        if not existing_student_ids(conn, [student_id]):
            raise NotFoundError(f"Student {student_id} not found")
        position = conn.execute(
            "SELECT COALESCE(MAX(position), -1) + 1 FROM schedule_entries WHERE day = ? AND time_slot = ?",
            (day, slot),
        ).fetchone()[0]
        try:
            conn.execute(
                "INSERT INTO schedule_entries (day, time_slot, student_id, position) VALUES (?, ?, ?, ?)",
                (day, slot, student_id, position),
            )
        except sqlite3.IntegrityError as e:
            raise ConflictError("Student already scheduled for this time slot") from e
    logger.info("Added student %s to %s slot %s", student_id, day, TIME_SLOTS[slot].label)


def remove_student(db_path: str, day: str, slot: int, student_id: int) -> None:
    day, slot = validate_cell(day, slot)
    with transaction(db_path) as conn:
        cur = conn.execute(
            "DELETE FROM schedule_entries WHERE day = ? AND time_slot = ? AND student_id = ?",
            (day, slot, student_id),
        )
        if cur.rowcount == 0:
            raise NotFoundError(f"Student {student_id} is not scheduled on {day} slot {TIME_SLOTS[slot].label}")
    logger.info("Removed student %s from %s slot %s", student_id, day, TIME_SLOTS[slot].label)


def clear_all(db_path: str) -> None:
    with transaction(db_path) as conn:
        conn.execute("DELETE FROM schedule_entries")
    logger.info("Cleared the schedule")


def count_sessions(db_path: str) -> int:
    """Total number of student placements across the whole week."""
    conn = get_connection(db_path)
    count = conn.execute("SELECT COUNT(*) FROM schedule_entries").fetchone()[0]
    conn.close()
    return count
