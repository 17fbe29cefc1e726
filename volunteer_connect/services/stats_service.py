"""Per-user activity and task statistics."""

import calendar
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import func, or_, and_, select
from sqlalchemy.orm import Session

from volunteer_connect.core.exceptions import ValidationError
from volunteer_connect.models.activity import Activity, ActivityParticipant
from volunteer_connect.models.task import ActivityTask, TaskUser
from volunteer_connect.models.user import User
from volunteer_connect.services import lifecycle
from volunteer_connect.services.permission_service import is_admin

PERIODS = ("last_week", "last_month", "last_year")


def subtract_months(value: datetime, months: int) -> datetime:
    """Calendar month subtraction, clamping the day (Mar 31 - 1 month = Feb 28/29)."""
    total = value.year * 12 + (value.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def resolve_period(
    period: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    now: Optional[datetime] = None,
) -> Tuple[datetime, datetime]:
    now = now or lifecycle.utcnow()
    if start_date or end_date:
        start = lifecycle.parse_datetime_input(start_date) if start_date else None
        end = lifecycle.parse_datetime_input(end_date) if end_date else now
        if start is None or end is None:
            raise ValidationError("Invalid start_date or end_date")
        if start > end:
            raise ValidationError("start_date must be before end_date")
        return start, end
    period = period or "last_month"
    if period == "last_week":
        return now - timedelta(days=7), now
    if period == "last_month":
        return subtract_months(now, 1), now
    if period == "last_year":
        return subtract_months(now, 12), now
    raise ValidationError(f"Invalid period. Must be one of: {', '.join(PERIODS)}")


class StatsService:

    @staticmethod
    def _created_tasks(db: Session, user: User):
        return (
            db.query(ActivityTask)
            .join(Activity, Activity.id == ActivityTask.activity_id)
            .filter(ActivityTask.created_by == user.id, Activity.is_active.is_(True))
        )

    @staticmethod
    def total_hours(db: Session, user: User) -> int:
        total = (
            StatsService._created_tasks(db, user)
            .with_entities(func.coalesce(func.sum(ActivityTask.total_hours), 0))
            .scalar()
        )
        return int(total or 0)

    @staticmethod
    def total_tasks(db: Session, user: User) -> int:
        return StatsService._created_tasks(db, user).count()

    @staticmethod
    def involved_activities(db: Session, user: User) -> List[Activity]:
        """Activities the user created, joined, authored a task in, or is assigned in."""
        ids: Set[int] = set()
        ids.update(i for (i,) in db.query(Activity.id).filter(Activity.created_by == user.id))
        ids.update(
            i for (i,) in db.query(ActivityParticipant.activity_id)
            .filter(ActivityParticipant.user_id == user.id)
        )
        ids.update(
            i for (i,) in db.query(ActivityTask.activity_id)
            .filter(ActivityTask.created_by == user.id)
        )
        ids.update(
            i for (i,) in db.query(ActivityTask.activity_id)
            .join(TaskUser, TaskUser.task_id == ActivityTask.id)
            .filter(TaskUser.user_id == user.id)
        )
        if not ids:
            return []
        query = db.query(Activity).filter(Activity.id.in_(ids), Activity.is_active.is_(True))
        if not is_admin(user):
            query = query.filter(or_(Activity.is_public.is_(True), Activity.created_by == user.id))
        return query.all()

    @staticmethod
    def completed_activities(db: Session, user: User, now: Optional[datetime] = None) -> int:
        now = now or lifecycle.utcnow()
        return sum(
            1 for a in StatsService.involved_activities(db, user)
            if lifecycle.derive_status(a.start_date, a.end_date, now) == lifecycle.ActivityStatus.completed
        )

    @staticmethod
    def my_activities(db: Session, user: User) -> int:
        return len(StatsService.involved_activities(db, user))

    @staticmethod
    def task_hours_by_activity(
        db: Session,
        user: User,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Hours of the caller's created or assigned tasks touched in the range, grouped per activity."""
        start, end = resolve_period(period, start_date, end_date, now)
        assigned_ids = select(TaskUser.task_id).where(TaskUser.user_id == user.id)
        rows = (
            db.query(
                Activity.id,
                Activity.title,
                func.coalesce(func.sum(ActivityTask.total_hours), 0),
                func.count(ActivityTask.id),
            )
            .join(ActivityTask, ActivityTask.activity_id == Activity.id)
            .filter(
                Activity.is_active.is_(True),
                or_(ActivityTask.created_by == user.id, ActivityTask.id.in_(assigned_ids)),
                or_(
                    and_(ActivityTask.created_at >= start, ActivityTask.created_at <= end),
                    and_(ActivityTask.updated_at >= start, ActivityTask.updated_at <= end),
                ),
            )
            .group_by(Activity.id, Activity.title)
            .order_by(Activity.title)
            .all()
        )
        activities = [
            {
                "activity_id": activity_id,
                "activity_title": title,
                "total_hours": int(hours or 0),
                "task_count": int(count),
            }
            for activity_id, title, hours, count in rows
        ]
        return {
            "start_date": start,
            "end_date": end,
            "total_hours": sum(a["total_hours"] for a in activities),
            "activities": activities,
        }


stats_service = StatsService()
