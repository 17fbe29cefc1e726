"""Activity lifecycle evaluator.

Status and progress are pure functions of the current time, the activity
dates and its task list. Nothing here is persisted; every read recomputes.
All datetimes are naive UTC.
"""

import enum
import math
from datetime import datetime, date, timezone
from typing import Any, Iterable, Optional

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from volunteer_connect.db.base import utcnow
from volunteer_connect.models.task import TaskStatus


class ActivityStatus(str, enum.Enum):
    upcoming = "upcoming"
    ongoing = "ongoing"
    completed = "completed"


_datetime_adapter = TypeAdapter(datetime)
_date_adapter = TypeAdapter(date)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime_input(value: Any) -> Optional[datetime]:
    """Parse ISO-8601, ``YYYY-MM-DD HH:MM:SS`` or ``YYYY-MM-DD`` into naive UTC.

    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_utc(_datetime_adapter.validate_python(text))
    except PydanticValidationError:
        pass
    try:
        d = _date_adapter.validate_python(text)
    except PydanticValidationError:
        return None
    return datetime(d.year, d.month, d.day)


def derive_status(
    start: Optional[datetime], end: Optional[datetime], now: Optional[datetime] = None
) -> ActivityStatus:
    now = now or utcnow()
    if end is not None and end < now:
        return ActivityStatus.completed
    if start is not None and start <= now:
        return ActivityStatus.ongoing
    return ActivityStatus.upcoming


def derive_progress(
    status: ActivityStatus,
    start: Optional[datetime],
    end: Optional[datetime],
    now: Optional[datetime] = None,
) -> int:
    """Time-based progress percentage."""
    if status == ActivityStatus.completed:
        return 100
    if status == ActivityStatus.upcoming:
        return 0
    if start is None or end is None:
        return 50
    now = now or utcnow()
    total = (end - start).total_seconds()
    if total <= 0:
        return 50
    elapsed = (now - start).total_seconds()
    return max(0, min(100, round_half_up(elapsed / total * 100)))


def is_task_completed(task: Any) -> bool:
    status = task.get("status") if isinstance(task, dict) else getattr(task, "status", None)
    return normalize_task_status(status) == TaskStatus.completed


def normalize_task_status(value: Any) -> Optional[TaskStatus]:
    """Map stored or legacy status strings onto TaskStatus; ``pending`` reads as in-progress."""
    if value is None:
        return None
    if isinstance(value, TaskStatus):
        return value
    text = str(value).strip().lower()
    if text == TaskStatus.completed.value:
        return TaskStatus.completed
    if text in (TaskStatus.in_progress.value, "pending", "in_progress"):
        return TaskStatus.in_progress
    return None


def task_progress(tasks: Iterable[Any]) -> int:
    tasks = list(tasks)
    if not tasks:
        return 0
    done = sum(1 for t in tasks if is_task_completed(t))
    return round_half_up(100 * done / len(tasks))


def activity_progress(
    status: ActivityStatus,
    start: Optional[datetime],
    end: Optional[datetime],
    tasks: Iterable[Any],
    now: Optional[datetime] = None,
) -> int:
    tasks = list(tasks)
    if tasks:
        return task_progress(tasks)
    return derive_progress(status, start, end, now)


def evaluate(activity, now: Optional[datetime] = None) -> dict:
    """Status and progress for an Activity row, using its loaded tasks."""
    now = now or utcnow()
    status = derive_status(activity.start_date, activity.end_date, now)
    progress = activity_progress(
        status, activity.start_date, activity.end_date, activity.tasks, now
    )
    return {"status": status.value, "progress": progress}
