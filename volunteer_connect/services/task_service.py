"""Task and assignment tracker.

Edit rights on a task: admins always; otherwise only the task's creator, and
only while that creator is not an admin. Assigned users may change the status
and nothing else.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from volunteer_connect.core.exceptions import (
    ValidationError, AuthorizationError, ResourceNotFoundError,
)
from volunteer_connect.models.activity import Activity, ActivityParticipant
from volunteer_connect.models.task import ActivityTask, TaskUser, TaskStatus, AssignmentStatus
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import TaskOut, AssignmentOut
from volunteer_connect.services import lifecycle
from volunteer_connect.services.activity_service import ActivityService
from volunteer_connect.services.permission_service import is_admin

logger = logging.getLogger("volunteer_connect.tasks")

ASSIGNMENT_STATUSES = {s.value for s in AssignmentStatus}
_STATUS_ONLY_FIELDS = {"status", "completed"}
_TASK_TEXT_FIELDS = ("description", "total_hours")


def assignment_out(a: TaskUser) -> AssignmentOut:
    return AssignmentOut(
        id=a.id,
        task_id=a.task_id,
        user_id=a.user_id,
        status=a.status,
        assigned_at=a.assigned_at,
        updated_at=a.updated_at,
        user_name=a.user.name if a.user else None,
        user_email=a.user.email if a.user else None,
    )


def task_out(task: ActivityTask, **extra) -> TaskOut:
    return TaskOut(
        id=task.id,
        activity_id=task.activity_id,
        title=task.title,
        description=task.description,
        start_date=task.start_date,
        due_date=task.due_date,
        total_hours=task.total_hours,
        status=task.status.value if isinstance(task.status, TaskStatus) else str(task.status),
        completed=task.completed,
        created_by=task.created_by,
        creator_name=task.creator.name if task.creator else None,
        creator_is_admin=is_admin(task.creator),
        assigned_users=[assignment_out(a) for a in task.assignments],
        created_at=task.created_at,
        updated_at=task.updated_at,
        **extra,
    )


def resolve_status(status: Any, completed: Optional[bool]) -> Optional[TaskStatus]:
    """Explicit ``status`` wins; the legacy ``completed`` flag is used only when status is absent."""
    if status is not None and status != "":
        resolved = lifecycle.normalize_task_status(status)
        if resolved is None:
            raise ValidationError("Invalid status. Must be 'in-progress' or 'completed'")
        return resolved
    if completed is not None:
        return TaskStatus.completed if completed else TaskStatus.in_progress
    return None


def _parse_optional_date(data: Dict[str, Any], field: str):
    raw = data.get(field)
    value = lifecycle.parse_datetime_input(raw)
    if value is None and raw not in (None, ""):
        raise ValidationError(f"Invalid {field} format")
    return value


class TaskService:

    @staticmethod
    def can_edit(task: ActivityTask, user: User) -> bool:
        if is_admin(user):
            return True
        return task.created_by == user.id and not is_admin(task.creator)

    @staticmethod
    def is_assignee(task: ActivityTask, user: User) -> bool:
        return any(a.user_id == user.id for a in task.assignments)

    @staticmethod
    def get_task(db: Session, activity_id: int, task_id: int) -> ActivityTask:
        ActivityService.get_active(db, activity_id)
        task = (
            db.query(ActivityTask)
            .filter(ActivityTask.id == task_id, ActivityTask.activity_id == activity_id)
            .first()
        )
        if task is None:
            raise ResourceNotFoundError("Task not found")
        return task

    @staticmethod
    def get_visible_task(db: Session, activity_id: int, task_id: int, user: User) -> ActivityTask:
        ActivityService.get_visible(db, activity_id, user)
        return TaskService.get_task(db, activity_id, task_id)

    @staticmethod
    def list_tasks(db: Session, activity_id: int, user: User) -> Tuple[List[ActivityTask], int]:
        """Tasks of a visible activity plus the activity progress recomputed from them."""
        activity = ActivityService.get_visible(db, activity_id, user)
        tasks = list(activity.tasks)
        status = lifecycle.derive_status(activity.start_date, activity.end_date)
        progress = lifecycle.activity_progress(status, activity.start_date, activity.end_date, tasks)
        return tasks, progress

    @staticmethod
    def create_task(db: Session, activity_id: int, user: User, data: Dict[str, Any]) -> ActivityTask:
        activity = ActivityService.get_active(db, activity_id)
        is_participant = (
            db.query(ActivityParticipant)
            .filter(ActivityParticipant.activity_id == activity.id, ActivityParticipant.user_id == user.id)
            .first()
            is not None
        )
        if not (is_admin(user) or activity.created_by == user.id or is_participant):
            raise AuthorizationError("You must be the activity creator or a participant to add tasks")

        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("Task title is required")

        status = resolve_status(data.get("status"), data.get("completed")) or TaskStatus.in_progress
        task = ActivityTask(
            activity_id=activity.id,
            title=title,
            description=data.get("description"),
            start_date=_parse_optional_date(data, "start_date"),
            due_date=_parse_optional_date(data, "due_date"),
            total_hours=data.get("total_hours"),
            status=status,
            created_by=user.id,
        )
        db.add(task)
        db.commit()
        db.refresh(task)
        logger.info("Task %s created in activity %s by user %s", task.id, activity.id, user.id)
        return task

    @staticmethod
    def update_task(
        db: Session, activity_id: int, task_id: int, user: User, changes: Dict[str, Any]
    ) -> ActivityTask:
        if not changes:
            raise ValidationError("No fields to update")
        task = TaskService.get_task(db, activity_id, task_id)

        if not TaskService.can_edit(task, user):
            if not (TaskService.is_assignee(task, user) and set(changes) <= _STATUS_ONLY_FIELDS):
                raise AuthorizationError("You do not have permission to edit this task")

        if "title" in changes:
            title = (changes["title"] or "").strip()
            if not title:
                raise ValidationError("Task title is required")
            task.title = title
        for field in _TASK_TEXT_FIELDS:
            if field in changes:
                setattr(task, field, changes[field])
        for field in ("start_date", "due_date"):
            if field in changes:
                setattr(task, field, _parse_optional_date(changes, field))
        status = resolve_status(changes.get("status"), changes.get("completed"))
        if status is not None:
            task.status = status

        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def toggle_task(db: Session, activity_id: int, task_id: int, user: User) -> ActivityTask:
        task = TaskService.get_task(db, activity_id, task_id)
        if not (TaskService.can_edit(task, user) or TaskService.is_assignee(task, user)):
            raise AuthorizationError("You do not have permission to update this task")
        task.status = TaskStatus.in_progress if task.completed else TaskStatus.completed
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete_task(db: Session, activity_id: int, task_id: int, user: User) -> None:
        task = TaskService.get_task(db, activity_id, task_id)
        if not TaskService.can_edit(task, user):
            raise AuthorizationError("You do not have permission to delete this task")
        db.delete(task)
        db.commit()

    # ---- Assignments ----

    @staticmethod
    def _managed_task(db: Session, activity_id: int, task_id: int, user: User) -> ActivityTask:
        task = TaskService.get_task(db, activity_id, task_id)
        if not ActivityService.can_manage(task.activity, user):
            raise AuthorizationError("Only the activity creator or an admin can manage task assignments")
        return task

    @staticmethod
    def _find_assignment(db: Session, task_id: int, user_id: int) -> Optional[TaskUser]:
        return (
            db.query(TaskUser)
            .filter(TaskUser.task_id == task_id, TaskUser.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_assignees(db: Session, activity_id: int, task_id: int, user: User) -> List[TaskUser]:
        ActivityService.get_visible(db, activity_id, user)
        task = TaskService.get_task(db, activity_id, task_id)
        return list(task.assignments)

    @staticmethod
    def add_user_to_task(
        db: Session, activity_id: int, task_id: int, actor: User, user_id: int,
        status: Optional[str] = None,
    ) -> Tuple[TaskUser, bool]:
        """Assign a user. Returns ``(assignment, created)``; an existing assignment is returned as-is."""
        status = status or AssignmentStatus.assigned.value
        if status not in ASSIGNMENT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(ASSIGNMENT_STATUSES))}")
        task = TaskService._managed_task(db, activity_id, task_id, actor)
        target = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
        if target is None:
            raise ResourceNotFoundError("User not found or inactive")

        existing = TaskService._find_assignment(db, task.id, user_id)
        if existing is not None:
            return existing, False

        assignment = TaskUser(task_id=task.id, user_id=user_id, status=status)
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment, True

    @staticmethod
    def remove_user_from_task(db: Session, activity_id: int, task_id: int, actor: User, user_id: int) -> None:
        task = TaskService._managed_task(db, activity_id, task_id, actor)
        assignment = TaskService._find_assignment(db, task.id, user_id)
        if assignment is None:
            raise ResourceNotFoundError("User is not assigned to this task")
        db.delete(assignment)
        db.commit()

    @staticmethod
    def update_assignment_status(
        db: Session, activity_id: int, task_id: int, actor: User, user_id: int, status: str
    ) -> TaskUser:
        if status not in ASSIGNMENT_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(ASSIGNMENT_STATUSES))}")
        task = TaskService._managed_task(db, activity_id, task_id, actor)
        assignment = TaskService._find_assignment(db, task.id, user_id)
        if assignment is None:
            raise ResourceNotFoundError("User is not assigned to this task")
        assignment.status = status
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def my_tasks(db: Session, user: User) -> List[TaskOut]:
        """Tasks the caller created or is assigned to, within active activities."""
        assigned_ids = select(TaskUser.task_id).where(TaskUser.user_id == user.id)
        tasks = (
            db.query(ActivityTask)
            .join(Activity, Activity.id == ActivityTask.activity_id)
            .filter(
                Activity.is_active.is_(True),
                or_(ActivityTask.created_by == user.id, ActivityTask.id.in_(assigned_ids)),
            )
            .order_by(ActivityTask.created_at.desc(), ActivityTask.id.desc())
            .all()
        )
        return [
            task_out(
                t,
                task_type="created" if t.created_by == user.id else "assigned",
                activity_title=t.activity.title if t.activity else None,
            )
            for t in tasks
        ]


task_service = TaskService()
