"""Student roster management."""
import logging
from datetime import datetime

from cabinet_planner.db import get_connection, transaction
from cabinet_planner.errors import NotFoundError, ValidationError
from cabinet_planner.models import Student
from cabinet_planner.plans import validate_plan_type

logger = logging.getLogger(__name__)


def row_to_student(row) -> Student:
    return Student(
        id=row["id"],
        name=row["name"],
        grade=row["grade"],
        plan_type=row["plan_type"],
        notes=row["notes"] or "",
    )


def _clean_fields(name: str, grade: str, plan_type) -> tuple[str, str, int]:
    name = (name or "").strip()
    grade = (grade or "").strip()
    if not name or not grade:
        raise ValidationError("Name and grade are required")
    return name, grade, validate_plan_type(plan_type)


def list_students(db_path: str) -> list[Student]:
    """All students in the order they were added."""
    conn = get_connection(db_path)
    rows = conn.execute("SELECT * FROM students ORDER BY roster_position, id").fetchall()
    conn.close()
    return [row_to_student(r) for r in rows]


def get_student(db_path: str, student_id: int) -> Student:
    conn = get_connection(db_path)
    row = conn.execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()
    conn.close()
    if row is None:
        raise NotFoundError(f"Student {student_id} not found")
    return row_to_student(row)


def add_student(db_path: str, name: str, grade: str, plan_type, notes: str = "") -> Student:
    name, grade, plan_type = _clean_fields(name, grade, plan_type)
    notes = (notes or "").strip()
    conn = get_connection(db_path)
    position = conn.execute(
        "SELECT COALESCE(MAX(roster_position), -1) + 1 FROM students"
    ).fetchone()[0]
    cur = conn.execute(
        """INSERT INTO students (name, grade, plan_type, notes, roster_position, created_at)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (name, grade, plan_type, notes, position, datetime.now().isoformat()),
    )
    conn.commit()
    student_id = cur.lastrowid
    conn.close()
    logger.info("Added student %s (%s - %s, plan %s)", student_id, grade, name, plan_type)
    return Student(id=student_id, name=name, grade=grade, plan_type=plan_type, notes=notes)


def update_student(db_path: str, student_id: int, name: str, grade: str, plan_type,
                   notes: str | None = None) -> Student:
    """Rewrite a student's fields. notes=None keeps the current notes."""
    name, grade, plan_type = _clean_fields(name, grade, plan_type)
    current = get_student(db_path, student_id)
    notes = current.notes if notes is None else notes.strip()
    conn = get_connection(db_path)
    conn.execute(
        "UPDATE students SET name = ?, grade = ?, plan_type = ?, notes = ? WHERE id = ?",
        (name, grade, plan_type, notes, student_id),
    )
    conn.commit()
    conn.close()
    logger.info("Updated student %s", student_id)
    return Student(id=student_id, name=name, grade=grade, plan_type=plan_type, notes=notes)


def delete_student(db_path: str, student_id: int) -> None:
    """Remove a student together with its progress and every schedule entry."""
    with transaction(db_path) as conn:
        row = conn.execute("SELECT id FROM students WHERE id = ?", (student_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Student {student_id} not found")
        conn.execute("DELETE FROM student_progress WHERE student_id = ?", (student_id,))
        conn.execute("DELETE FROM schedule_entries WHERE student_id = ?", (student_id,))
        conn.execute("DELETE FROM students WHERE id = ?", (student_id,))
    logger.info("Deleted student %s", student_id)


def existing_student_ids(conn, student_ids) -> set[int]:
    """The subset of student_ids present in the students table."""
    ids = list(student_ids)
    if not ids:
        return set()
    placeholders = ",".join("?" * len(ids))
    rows = conn.execute(f"SELECT id FROM students WHERE id IN ({placeholders})", ids).fetchall()
    return {r["id"] for r in rows}
