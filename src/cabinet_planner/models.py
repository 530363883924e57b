"""Data classes and fixed structures for the cabinet domain model."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cabinet_planner.errors import ValidationError

PLAN_TYPES = (1, 2, 3, 4, 5, 6)

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")
DAY_LABELS = {
    "monday": "Mon",
    "tuesday": "Tue",
    "wednesday": "Wed",
    "thursday": "Thu",
    "friday": "Fri",
}

DATE_FORMAT = "%d.%m.%Y"


@dataclass(frozen=True)
class TimeSlot:
    label: str
    early: str
    late: str


TIME_SLOTS = (
    TimeSlot("I", "08:00 - 08:20", "08:20 - 08:40"),
    TimeSlot("II", "08:45 - 09:05", "09:05 - 09:25"),
    TimeSlot("III", "09:40 - 10:00", "10:00 - 10:20"),
    TimeSlot("IV", "10:25 - 10:45", "10:45 - 11:05"),
    TimeSlot("V", "11:10 - 11:30", "11:30 - 11:50"),
)

# Every window a completion can be stamped with, in display order.
TIME_WINDOWS = tuple(w for slot in TIME_SLOTS for w in (slot.early, slot.late))


@dataclass
class Student:
    id: int
    name: str
    grade: str
    plan_type: int
    notes: str = ""


@dataclass
class PlanActivity:
    id: int
    plan_type: int
    activity_text: str
    order_index: int


@dataclass
class ProgressRecord:
    student_id: int
    activity_index: int
    completed: bool = False
    date: str = ""
    time: str = ""


class ProgressStatus(Enum):
    INCOMPLETE = "incomplete"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


def progress_status(record: Optional[ProgressRecord]) -> ProgressStatus:
    """Explicit state of one activity for one student.

    No record means INCOMPLETE. A record that carries a date or a time but
    has not been flipped to completed is SCHEDULED.
    """
    if record is None:
        return ProgressStatus.INCOMPLETE
    if record.completed:
        return ProgressStatus.COMPLETED
    if record.date or record.time:
        return ProgressStatus.SCHEDULED
    return ProgressStatus.INCOMPLETE


def student_label(student: Student) -> str:
    return f"{student.grade} - {student.name}"


def coerce_int(value, what: str) -> int:
    """int(value) for ints, integral floats and numeric strings; bools are rejected."""
    if isinstance(value, bool):
        raise ValidationError(f"{what} must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{what} must be an integer, got {value!r}")
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{what} must be an integer, got {value!r}") from None
