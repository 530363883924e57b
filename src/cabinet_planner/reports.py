"""Plain-text schedule and progress reports."""
import logging
from datetime import date
from pathlib import Path

from cabinet_planner.models import DAY_LABELS, DAYS, TIME_SLOTS, student_label
from cabinet_planner.plans import get_all_plans
from cabinet_planner.progress import get_progress, monthly_summary, student_stats
from cabinet_planner.schedule import get_schedule
from cabinet_planner.students import list_students

logger = logging.getLogger(__name__)

TITLE = "Cabinet for hearing, speech, voice and augmentative and alternative communication"


def schedule_report(db_path: str) -> str:
    students = {s.id: s for s in list_students(db_path)}
    schedule = get_schedule(db_path)
    lines = [f"Weekly Schedule - {TITLE}", ""]
    for day in DAYS:
        lines.append(DAY_LABELS[day])
        lines.append("=" * 30)
        has_sessions = False
        for slot, ids in zip(TIME_SLOTS, schedule[day]):
            members = [students[sid] for sid in ids if sid in students]
            if not members:
                continue
            has_sessions = True
            lines.append(f"{slot.label} ({slot.early} / {slot.late}):")
            lines.extend(f"  - {student_label(s)}" for s in members)
        if not has_sessions:
            lines.append("No sessions scheduled")
        lines.append("")
    return "\n".join(lines)


def progress_report(db_path: str, today: date | None = None) -> str:
    today = today or date.today()
    plans = get_all_plans(db_path)
    lines = [f"Progress Report - {TITLE}", "", f"Month: {today.month}/{today.year}", ""]
    students = list_students(db_path)
    if not students:
        lines.append("No students")
        lines.append("")
    for student in students:
        activities = plans[student.plan_type]
        stats = student_stats(db_path, student.id)
        lines.append(student_label(student))
        lines.append(
            f"Completed activities: {stats['completed_activities']}/{stats['total_activities']} "
            f"({stats['percentage']}%)"
        )
        records = [
            (idx, r) for idx, r in get_progress(db_path, student.id).items() if idx < len(activities)
        ]
        if records:
            lines.append("Completed list:")
            lines.extend(f"  - {activities[idx]} ({r.date} {r.time})".rstrip() for idx, r in records)
        else:
            lines.append("No completed activities")
        lines.append("")
    return "\n".join(lines)


def monthly_report(db_path: str, year: int, month: int) -> str:
    lines = [f"Monthly Progress {month:02d}/{year} - {TITLE}", ""]
    summary = monthly_summary(db_path, year, month)
    if not summary:
        lines.append("No students")
        lines.append("")
    for entry in summary:
        lines.append(student_label(entry["student"]))
        lines.append(
            f"{len(entry['completed_in_month'])}/{entry['total_activities']} activities "
            f"({entry['percentage']}%)"
        )
        if entry["completed_in_month"]:
            for item in entry["completed_in_month"]:
                lines.append(f"  {item['index'] + 1}. {item['text']} - {item['date']} {item['time']}".rstrip())
        else:
            lines.append("No activities completed this month")
        lines.append("")
    return "\n".join(lines)


def write_report(content: str, file_path: str) -> Path:
    """Write a report to disk as UTF-8 text."""
    path = Path(file_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote report %s", path)
    return path
