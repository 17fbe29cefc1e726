"""Activity service: creation, visibility-filtered reads, updates, soft delete."""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from volunteer_connect.core.exceptions import (
    ValidationError, AuthorizationError, ResourceNotFoundError,
)
from volunteer_connect.models.activity import Activity, ActivityParticipant, ParticipantStatus
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import ActivityOut, ParticipantOut
from volunteer_connect.services import lifecycle
from volunteer_connect.services.permission_service import is_admin

logger = logging.getLogger("volunteer_connect.activities")

_EDITABLE_FIELDS = ("title", "description", "category", "organization_name", "location", "max_participants")


def participant_out(p: ActivityParticipant) -> ParticipantOut:
    return ParticipantOut(
        id=p.id,
        activity_id=p.activity_id,
        user_id=p.user_id,
        status=p.status,
        joined_at=p.joined_at,
        user_name=p.user.name if p.user else None,
        user_email=p.user.email if p.user else None,
    )


def active_participant_count(activity: Activity) -> int:
    return sum(1 for p in activity.participants if p.status != ParticipantStatus.cancelled.value)


class ActivityService:
    """Visibility rules and CRUD for activities."""

    @staticmethod
    def can_view(activity: Activity, user: User) -> bool:
        if is_admin(user):
            return True
        return bool(activity.is_public) or activity.created_by == user.id

    @staticmethod
    def can_manage(activity: Activity, user: User) -> bool:
        """Owner or admin may edit, delete and manage participants and assignments."""
        return is_admin(user) or activity.created_by == user.id

    @staticmethod
    def get_active(db: Session, activity_id: int) -> Activity:
        activity = (
            db.query(Activity)
            .filter(Activity.id == activity_id, Activity.is_active.is_(True))
            .first()
        )
        if activity is None:
            raise ResourceNotFoundError("Activity not found")
        return activity

    @staticmethod
    def get_visible(db: Session, activity_id: int, user: User) -> Activity:
        activity = ActivityService.get_active(db, activity_id)
        if not ActivityService.can_view(activity, user):
            raise AuthorizationError("You do not have access to this activity")
        return activity

    @staticmethod
    def visible_query(db: Session, user: User):
        query = db.query(Activity).filter(Activity.is_active.is_(True))
        if not is_admin(user):
            query = query.filter(or_(Activity.is_public.is_(True), Activity.created_by == user.id))
        return query

    @staticmethod
    def validate_user_ids(db: Session, user_ids: Iterable[int]) -> List[int]:
        """Dedupe and check every id is an active user; any miss fails the whole batch."""
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return []
        found = {
            uid for (uid,) in db.query(User.id)
            .filter(User.id.in_(ids), User.is_active.is_(True))
            .all()
        }
        missing = [uid for uid in ids if uid not in found]
        if missing:
            raise ValidationError(f"Invalid user IDs: {', '.join(str(m) for m in missing)}")
        return ids

    @staticmethod
    def _parse_dates(data: Dict[str, Any]) -> Dict[str, Optional[datetime]]:
        parsed: Dict[str, Optional[datetime]] = {}
        for field in ("start_date", "end_date"):
            if field not in data:
                continue
            raw = data[field]
            value = lifecycle.parse_datetime_input(raw)
            if value is None and raw not in (None, ""):
                raise ValidationError(f"Invalid {field} format")
            parsed[field] = value
        return parsed

    @staticmethod
    def create(db: Session, creator: User, data: Dict[str, Any]) -> Activity:
        """Create an activity. ``is_public`` is decided by the creator's role only."""
        title = (data.get("title") or "").strip()
        if not title or not data.get("start_date"):
            raise ValidationError("Title and start_date are required")
        dates = ActivityService._parse_dates(data)
        if dates.get("start_date") is None:
            raise ValidationError("Invalid start_date format")

        creator_is_admin = is_admin(creator)
        participant_ids: List[int] = []
        if creator_is_admin and data.get("participant_ids"):
            participant_ids = ActivityService.validate_user_ids(db, data["participant_ids"])

        activity = Activity(
            title=title,
            description=data.get("description"),
            category=data.get("category"),
            organization_name=data.get("organization_name"),
            location=data.get("location"),
            start_date=dates["start_date"],
            end_date=dates.get("end_date"),
            max_participants=data.get("max_participants"),
            created_by=creator.id,
            is_public=creator_is_admin,
            is_active=True,
        )
        try:
            db.add(activity)
            db.flush()
            for uid in participant_ids:
                db.add(ActivityParticipant(
                    activity_id=activity.id,
                    user_id=uid,
                    status=ParticipantStatus.registered.value,
                ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(activity)
        logger.info("Activity %s created by user %s (public=%s)", activity.id, creator.id, activity.is_public)
        return activity

    @staticmethod
    def list_visible(db: Session, user: User) -> List[Activity]:
        return (
            ActivityService.visible_query(db, user)
            .order_by(Activity.start_date.asc(), Activity.id.asc())
            .all()
        )

    @staticmethod
    def update(db: Session, activity_id: int, user: User, changes: Dict[str, Any]) -> Activity:
        activity = ActivityService.get_active(db, activity_id)
        if not ActivityService.can_manage(activity, user):
            raise AuthorizationError("Only the activity creator or an admin can update it")

        # is_public is fixed at creation
        changes = {k: v for k, v in changes.items() if k != "is_public"}

        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise ValidationError("Title cannot be empty")
            changes["title"] = title
        if "start_date" in changes and not changes["start_date"]:
            raise ValidationError("start_date cannot be empty")
        dates = ActivityService._parse_dates(changes)

        participant_ids = changes.pop("participant_ids", None)
        if participant_ids is not None:
            participant_ids = ActivityService.validate_user_ids(db, participant_ids)

        try:
            for field in _EDITABLE_FIELDS:
                if field in changes:
                    setattr(activity, field, changes[field])
            for field, value in dates.items():
                setattr(activity, field, value)

            if participant_ids is not None:
                wanted = set(participant_ids)
                for p in list(activity.participants):
                    if p.user_id not in wanted:
                        activity.participants.remove(p)
                existing = {p.user_id for p in activity.participants}
                for uid in participant_ids:
                    if uid not in existing:
                        activity.participants.append(ActivityParticipant(
                            user_id=uid, status=ParticipantStatus.registered.value,
                        ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(activity)
        return activity

    @staticmethod
    def soft_delete(db: Session, activity_id: int, user: User) -> Activity:
        activity = ActivityService.get_active(db, activity_id)
        if not ActivityService.can_manage(activity, user):
            raise AuthorizationError("Only the activity creator or an admin can delete it")
        activity.is_active = False
        db.commit()
        logger.info("Activity %s deactivated by user %s", activity.id, user.id)
        return activity

    @staticmethod
    def serialize(
        activity: Activity,
        user: User,
        now: Optional[datetime] = None,
        include_participants: bool = False,
    ) -> ActivityOut:
        """Attach the computed status, progress and membership annotations."""
        evaluated = lifecycle.evaluate(activity, now)
        tasks = activity.tasks
        base = {c.name: getattr(activity, c.name) for c in Activity.__table__.columns}
        out = ActivityOut(
            **base,
            creator_name=activity.creator.name if activity.creator else None,
            status=evaluated["status"],
            progress=evaluated["progress"],
            participant_count=active_participant_count(activity),
            is_joined=any(
                p.user_id == user.id and p.status != ParticipantStatus.cancelled.value
                for p in activity.participants
            ),
            has_tasks=len(tasks) > 0,
            task_hours=sum(t.total_hours or 0 for t in tasks),
            task_count=len(tasks),
            completed_task_count=sum(1 for t in tasks if t.completed),
        )
        if include_participants:
            out.participants = [participant_out(p) for p in activity.participants]
        return out


activity_service = ActivityService()
