"""Per-student activity completion tracking and monthly rollups.

A record is keyed by (student, activity index). Absence of a record means the
activity is not done. A record can exist with a date but completed=False; it
becomes completed once a time is stamped on top of the date.
"""
import logging
from datetime import date, datetime

from cabinet_planner.db import get_connection, transaction
from cabinet_planner.errors import NotFoundError, ValidationError
from cabinet_planner.models import DATE_FORMAT, ProgressRecord, coerce_int
from cabinet_planner.plans import get_all_plans, list_activities
from cabinet_planner.students import get_student, list_students

logger = logging.getLogger(__name__)


def format_progress_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_progress_date(text: str) -> date | None:
    """Parse a stored DD.MM.YYYY date. Returns None when it can't be read."""
    if not text:
        return None
    parts = [p.strip() for p in str(text).split(".")]
    if len(parts) < 3:
        return None
    try:
        # Locale-formatted dates may carry a suffix after the year ("2024 г.").
        year = int(parts[2].split()[0])
        return date(year, int(parts[1]), int(parts[0]))
    except (ValueError, IndexError):
        return None


def normalize_date(value) -> str:
    """Accept a date, an ISO YYYY-MM-DD string or a DD.MM.YYYY string."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return format_progress_date(value)
    text = str(value).strip()
    try:
        return format_progress_date(date.fromisoformat(text))
    except ValueError:
        pass
    parsed = parse_progress_date(text)
    if parsed is None:
        raise ValidationError(f"Unrecognised date: {value!r}")
    return format_progress_date(parsed)


def row_to_record(row) -> ProgressRecord:
    return ProgressRecord(
        student_id=row["student_id"],
        activity_index=row["activity_index"],
        completed=bool(row["completed"]),
        date=row["completion_date"] or "",
        time=row["completion_time"] or "",
    )


def _check_target(conn, student_id: int, activity_index: int) -> None:
    if isinstance(activity_index, bool) or not isinstance(activity_index, int) or activity_index < 0:
        raise ValidationError(f"Activity index must be a non-negative integer, got {activity_index!r}")
    if conn.execute("SELECT id FROM students WHERE id = ?", (student_id,)).fetchone() is None:
        raise NotFoundError(f"Student {student_id} not found")


def _upsert(conn, record: ProgressRecord) -> None:
    conn.execute(
        """INSERT INTO student_progress
        (student_id, activity_index, completed, completion_date, completion_time, updated_at)
        VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(student_id, activity_index) DO UPDATE SET
            completed = excluded.completed,
            completion_date = excluded.completion_date,
            completion_time = excluded.completion_time,
            updated_at = excluded.updated_at""",
        (record.student_id, record.activity_index, int(record.completed),
         record.date, record.time, datetime.now().isoformat()),
    )


def _load(conn, student_id: int, activity_index: int) -> ProgressRecord:
    row = conn.execute(
        "SELECT * FROM student_progress WHERE student_id = ? AND activity_index = ?",
        (student_id, activity_index),
    ).fetchone()
    if row is None:
        return ProgressRecord(student_id=student_id, activity_index=activity_index)
    return row_to_record(row)


def get_progress(db_path: str, student_id: int) -> dict[int, ProgressRecord]:
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM student_progress WHERE student_id = ? ORDER BY activity_index",
        (student_id,),
    ).fetchall()
    conn.close()
    return {r["activity_index"]: row_to_record(r) for r in rows}


def get_record(db_path: str, student_id: int, activity_index: int) -> ProgressRecord | None:
    return get_progress(db_path, student_id).get(activity_index)


def set_completed(db_path: str, student_id: int, activity_index: int, completed: bool,
                  today: date | None = None) -> ProgressRecord | None:
    """Tick or untick an activity.

    Ticking stamps today's date and clears the time. Unticking deletes the
    record outright.
    """
    with transaction(db_path) as conn:
        _check_target(conn, student_id, activity_index)
        if not completed:
            conn.execute(
                "DELETE FROM student_progress WHERE student_id = ? AND activity_index = ?",
                (student_id, activity_index),
            )
            record = None
        else:
            record = ProgressRecord(
                student_id=student_id,
                activity_index=activity_index,
                completed=True,
                date=format_progress_date(today or date.today()),
                time="",
            )
            _upsert(conn, record)
    logger.info("Student %s activity %s completed=%s", student_id, activity_index, bool(completed))
    return record


def set_date(db_path: str, student_id: int, activity_index: int, value) -> ProgressRecord | None:
    """Set the completion date, creating the record if needed. Empty value is ignored."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    formatted = normalize_date(value)
    with transaction(db_path) as conn:
        _check_target(conn, student_id, activity_index)
        record = _load(conn, student_id, activity_index)
        record.date = formatted
        _upsert(conn, record)
    logger.debug("Student %s activity %s date=%s", student_id, activity_index, formatted)
    return record


def set_time(db_path: str, student_id: int, activity_index: int, time: str) -> ProgressRecord | None:
    """Set the completion time; with a date already present this marks the activity completed."""
    time = (time or "").strip()
    if not time:
        return None
    with transaction(db_path) as conn:
        _check_target(conn, student_id, activity_index)
        record = _load(conn, student_id, activity_index)
        record.time = time
        if record.date and record.time:
            record.completed = True
        _upsert(conn, record)
    logger.debug("Student %s activity %s time=%s completed=%s",
                 student_id, activity_index, time, record.completed)
    return record


def _percentage(done: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding, matching Math.round on the percentages users already see.
    return int(done * 100 / total + 0.5)


def student_stats(db_path: str, student_id: int) -> dict:
    """Overall completion for one student against their current plan."""
    student = get_student(db_path, student_id)
    total = len(list_activities(db_path, student.plan_type))
    completed = sum(1 for idx in get_progress(db_path, student_id) if idx < total)
    return {
        "student_id": student_id,
        "total_activities": total,
        "completed_activities": completed,
        "percentage": _percentage(completed, total),
        "remaining": total - completed,
    }


def monthly_summary(db_path: str, year: int, month: int) -> list[dict]:
    """Per student, the activities whose date falls in the given month.

    Entries are sorted by date. The percentage compares this month's count
    with the size of the student's whole plan.
    """
    year = coerce_int(year, "Year")
    month = coerce_int(month, "Month")
    if not 1 <= month <= 12:
        raise ValidationError(f"Month must be between 1 and 12, got {month!r}")
    plans = get_all_plans(db_path)
    summary = []
    for student in list_students(db_path):
        activities = plans.get(student.plan_type, [])
        completed_in_month = []
        for idx, record in get_progress(db_path, student.id).items():
            if idx >= len(activities):
                logger.debug("Skipping orphaned progress %s for student %s", idx, student.id)
                continue
            parsed = parse_progress_date(record.date)
            if parsed is None or parsed.year != year or parsed.month != month:
                continue
            completed_in_month.append({
                "index": idx,
                "text": activities[idx],
                "date": record.date,
                "time": record.time,
                "_sort": parsed,
            })
        completed_in_month.sort(key=lambda item: item["_sort"])
        for item in completed_in_month:
            del item["_sort"]
        total = len(activities)
        summary.append({
            "student": student,
            "completed_in_month": completed_in_month,
            "total_activities": total,
            "percentage": _percentage(len(completed_in_month), total),
        })
    return summary
