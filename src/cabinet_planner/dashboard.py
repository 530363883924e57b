"""Cabinet overview statistics."""
from cabinet_planner.progress import student_stats
from cabinet_planner.schedule import count_sessions
from cabinet_planner.students import list_students


def get_completion_label(percentage: float) -> str:
    if percentage >= 100:
        return "DONE"
    elif percentage >= 50:
        return "ON TRACK"
    elif percentage > 0:
        return "STARTED"
    return "NOT STARTED"


def get_completion_color(percentage: float) -> str:
    if percentage >= 100:
        return "green"
    elif percentage >= 50:
        return "yellow"
    elif percentage > 0:
        return "dark_orange"
    return "red"


def get_student_rows(db_path: str) -> list[dict]:
    rows = []
    for s in list_students(db_path):
        stats = student_stats(db_path, s.id)
        rows.append({
            "student": s,
            **stats,
            "label": get_completion_label(stats["percentage"]),
        })
    return rows


def get_overview_stats(db_path: str) -> dict:
    rows = get_student_rows(db_path)
    avg = round(sum(r["percentage"] for r in rows) / len(rows), 1) if rows else 0.0
    return {
        "total_students": len(rows),
        "total_sessions": count_sessions(db_path),
        "avg_completion": avg,
    }
