"""Join/leave membership manager and creator-side participant management."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, lazyload

from volunteer_connect.core.exceptions import (
    ValidationError, AuthorizationError, ResourceNotFoundError,
    ResourceConflictError, CapacityExceededError,
)
from volunteer_connect.models.activity import Activity, ActivityParticipant, ParticipantStatus
from volunteer_connect.models.user import User
from volunteer_connect.services.activity_service import ActivityService, active_participant_count

logger = logging.getLogger("volunteer_connect.membership")

PARTICIPANT_STATUSES = {s.value for s in ParticipantStatus}


def _lock_activity(db: Session, activity_id: int) -> Activity:
    """Select the activity row FOR UPDATE so capacity checks serialize per activity."""
    activity = (
        db.query(Activity)
        .options(lazyload(Activity.creator))
        .filter(Activity.id == activity_id, Activity.is_active.is_(True))
        .with_for_update()
        .first()
    )
    if activity is None:
        raise ResourceNotFoundError("Activity not found")
    return activity


def _find_participant(db: Session, activity_id: int, user_id: int) -> Optional[ActivityParticipant]:
    return (
        db.query(ActivityParticipant)
        .filter(ActivityParticipant.activity_id == activity_id, ActivityParticipant.user_id == user_id)
        .first()
    )


def _check_capacity(activity: Activity) -> None:
    if activity.max_participants is not None and active_participant_count(activity) >= activity.max_participants:
        raise CapacityExceededError("Activity is full")


def _insert_participant(db: Session, activity: Activity, user_id: int, status: str) -> ActivityParticipant:
    participant = ActivityParticipant(activity_id=activity.id, user_id=user_id, status=status)
    db.add(participant)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race against a concurrent join for the same pair
        db.rollback()
        raise ResourceConflictError("Already joined this activity")
    db.refresh(participant)
    return participant


class MembershipService:

    @staticmethod
    def join(db: Session, activity_id: int, user: User) -> ActivityParticipant:
        activity = _lock_activity(db, activity_id)
        if not activity.is_public:
            db.rollback()
            raise AuthorizationError("Only public activities can be joined")
        existing = _find_participant(db, activity.id, user.id)
        try:
            if existing is not None and existing.status != ParticipantStatus.cancelled.value:
                raise ResourceConflictError("Already joined this activity")
            _check_capacity(activity)
        except (ResourceConflictError, CapacityExceededError):
            db.rollback()
            raise
        if existing is not None:
            # A cancelled registration is revived in place; (activity, user) stays unique
            existing.status = ParticipantStatus.registered.value
            db.commit()
            db.refresh(existing)
            logger.info("User %s rejoined activity %s", user.id, activity.id)
            return existing
        participant = _insert_participant(db, activity, user.id, ParticipantStatus.registered.value)
        logger.info("User %s joined activity %s", user.id, activity.id)
        return participant

    @staticmethod
    def leave(db: Session, activity_id: int, user: User) -> None:
        activity = ActivityService.get_active(db, activity_id)
        participant = _find_participant(db, activity.id, user.id)
        if participant is None:
            raise ValidationError("You are not a participant of this activity")
        db.delete(participant)
        db.commit()
        logger.info("User %s left activity %s", user.id, activity.id)

    @staticmethod
    def add_participant(
        db: Session, activity_id: int, actor: User, user_id: int, status: Optional[str] = None
    ) -> ActivityParticipant:
        status = status or ParticipantStatus.registered.value
        if status not in PARTICIPANT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(PARTICIPANT_STATUSES))}")
        activity = _lock_activity(db, activity_id)
        try:
            if not ActivityService.can_manage(activity, actor):
                raise AuthorizationError("Only the activity creator or an admin can add participants")
            target = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
            if target is None:
                raise ResourceNotFoundError("User not found or inactive")
            if _find_participant(db, activity.id, user_id) is not None:
                raise ResourceConflictError("User is already a participant")
            _check_capacity(activity)
        except Exception:
            db.rollback()
            raise
        return _insert_participant(db, activity, user_id, status)

    @staticmethod
    def update_participant_status(
        db: Session, activity_id: int, actor: User, user_id: int, status: str
    ) -> ActivityParticipant:
        if status not in PARTICIPANT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(PARTICIPANT_STATUSES))}")
        activity = ActivityService.get_active(db, activity_id)
        if not ActivityService.can_manage(activity, actor):
            raise AuthorizationError("Only the activity creator or an admin can manage participants")
        participant = _find_participant(db, activity.id, user_id)
        if participant is None:
            raise ResourceNotFoundError("Participant not found")
        participant.status = status
        db.commit()
        db.refresh(participant)
        return participant

    @staticmethod
    def remove_participant(db: Session, activity_id: int, actor: User, user_id: int) -> None:
        activity = ActivityService.get_active(db, activity_id)
        if not ActivityService.can_manage(activity, actor):
            raise AuthorizationError("Only the activity creator or an admin can remove participants")
        participant = _find_participant(db, activity.id, user_id)
        if participant is None:
            raise ResourceNotFoundError("Participant not found")
        db.delete(participant)
        db.commit()


membership_service = MembershipService()
