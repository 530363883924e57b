"""Per-plan ordered activity templates.

Progress records point at an activity by its position in the plan, so every
function here keeps order_index dense (0..n-1) after each write.
"""
import logging
from datetime import datetime

from cabinet_planner.db import get_connection, transaction
from cabinet_planner.errors import NotFoundError, ValidationError
from cabinet_planner.models import PLAN_TYPES, PlanActivity, coerce_int

logger = logging.getLogger(__name__)


def validate_plan_type(plan_type) -> int:
    """Coerce plan_type to int and check it names one of the six plans."""
    try:
        value = coerce_int(plan_type, "Plan type")
    except ValidationError:
        raise ValidationError(f"Plan type must be between 1 and 6, got {plan_type!r}") from None
    if value not in PLAN_TYPES:
        raise ValidationError(f"Plan type must be between 1 and 6, got {plan_type!r}")
    return value


def clean_activities(texts) -> list[str]:
    """Trim each entry and drop the blank ones."""
    return [t.strip() for t in texts if isinstance(t, str) and t.strip()]


def activities_from_rows(rows, column: int = 1) -> list[str]:
    """Read activity texts from one column of raw spreadsheet rows.

    Rows that are too short, or whose cell is not a non-empty string, are skipped.
    """
    activities = []
    for row in rows:
        if row is None or len(row) <= column:
            continue
        cell = row[column]
        if isinstance(cell, str) and cell.strip():
            activities.append(cell.strip())
    return activities


def list_plan_rows(db_path: str, plan_type) -> list[PlanActivity]:
    plan_type = validate_plan_type(plan_type)
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT * FROM plan_activities WHERE plan_type = ? ORDER BY order_index, id",
        (plan_type,),
    ).fetchall()
    conn.close()
    return [
        PlanActivity(id=r["id"], plan_type=r["plan_type"], activity_text=r["activity_text"],
                     order_index=r["order_index"])
        for r in rows
    ]


def list_activities(db_path: str, plan_type) -> list[str]:
    return [a.activity_text for a in list_plan_rows(db_path, plan_type)]


def get_all_plans(db_path: str) -> dict[int, list[str]]:
    """Every plan slot, including the empty ones."""
    plans = {plan_type: [] for plan_type in PLAN_TYPES}
    conn = get_connection(db_path)
    rows = conn.execute(
        "SELECT plan_type, activity_text FROM plan_activities ORDER BY plan_type, order_index, id"
    ).fetchall()
    conn.close()
    for r in rows:
        plans[r["plan_type"]].append(r["activity_text"])
    return plans


def _write_plan(conn, plan_type: int, activities: list[str]) -> None:
    now = datetime.now().isoformat()
    conn.execute("DELETE FROM plan_activities WHERE plan_type = ?", (plan_type,))
    conn.executemany(
        "INSERT INTO plan_activities (plan_type, activity_text, order_index, created_at) VALUES (?, ?, ?, ?)",
        [(plan_type, text, i, now) for i, text in enumerate(activities)],
    )


def add_activity(db_path: str, plan_type, text: str) -> int:
    """Append an activity to the end of a plan. Returns its index."""
    plan_type = validate_plan_type(plan_type)
    text = (text or "").strip()
    if not text:
        raise ValidationError("Activity text is required")
    with transaction(db_path) as conn:
        next_index = conn.execute(
            "SELECT COALESCE(MAX(order_index), -1) + 1 FROM plan_activities WHERE plan_type = ?",
            (plan_type,),
        ).fetchone()[0]
        conn.execute(
            "INSERT INTO plan_activities (plan_type, activity_text, order_index, created_at) VALUES (?, ?, ?, ?)",
            (plan_type, text, next_index, datetime.now().isoformat()),
        )
    logger.info("Added activity %s to plan %s", next_index, plan_type)
    return next_index


def update_activity(db_path: str, plan_type, index: int, text: str) -> None:
    plan_type = validate_plan_type(plan_type)
    text = (text or "").strip()
    if not text:
        raise ValidationError("Activity text is required")
    rows = list_plan_rows(db_path, plan_type)
    if not 0 <= index < len(rows):
        raise NotFoundError(f"Plan {plan_type} has no activity {index + 1}")
    conn = get_connection(db_path)
    conn.execute("UPDATE plan_activities SET activity_text = ? WHERE id = ?", (text, rows[index].id))
    conn.commit()
    conn.close()
    logger.info("Updated activity %s in plan %s", index, plan_type)


def replace_activities(db_path: str, plan_type, texts) -> list[str]:
    """Overwrite a plan with texts, trimmed and without blank entries."""
    plan_type = validate_plan_type(plan_type)
    activities = clean_activities(texts)
    with transaction(db_path) as conn:
        _write_plan(conn, plan_type, activities)
    logger.info("Plan %s now has %d activities", plan_type, len(activities))
    return activities


def delete_activity(db_path: str, plan_type, index: int) -> None:
    """Remove one activity; the ones after it move up by one."""
    plan_type = validate_plan_type(plan_type)
    with transaction(db_path) as conn:
        activities = [
            r["activity_text"]
            for r in conn.execute(
                "SELECT activity_text FROM plan_activities WHERE plan_type = ? ORDER BY order_index, id",
                (plan_type,),
            ).fetchall()
        ]
        if not 0 <= index < len(activities):
            raise NotFoundError(f"Plan {plan_type} has no activity {index + 1}")
        del activities[index]
        _write_plan(conn, plan_type, activities)
    logger.info("Deleted activity %s from plan %s", index, plan_type)


def clear_plan(db_path: str, plan_type) -> None:
    plan_type = validate_plan_type(plan_type)
    with transaction(db_path) as conn:
        conn.execute("DELETE FROM plan_activities WHERE plan_type = ?", (plan_type,))
    logger.info("Cleared plan %s", plan_type)


def bulk_import_rows(db_path: str, plan_type, rows, column: int = 1) -> list[str]:
    """Replace a plan with the activities found in one column of rows."""
    plan_type = validate_plan_type(plan_type)
    rows = list(rows)
    activities = activities_from_rows(rows, column)
    if not activities:
        logger.warning("No activities found for plan %s in %d rows", plan_type, len(rows))
        raise ValidationError("No activities found")
    with transaction(db_path) as conn:
        _write_plan(conn, plan_type, activities)
    logger.info("Imported %d activities into plan %s", len(activities), plan_type)
    return activities
