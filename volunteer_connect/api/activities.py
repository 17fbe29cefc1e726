"""Activities API router: activities, membership, tasks, assignments and stats."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from volunteer_connect.core.security import get_current_user
from volunteer_connect.db.session import get_db
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import (
    ActivityCreate, ActivityUpdate, ParticipantAdd, ParticipantStatusUpdate,
    TaskCreate, TaskUpdate, AssignmentCreate, AssignmentStatusUpdate, ok,
)
from volunteer_connect.services.activity_service import activity_service, participant_out
from volunteer_connect.services.membership_service import membership_service
from volunteer_connect.services.permission_service import (
    RequirePermission, ACTIVITY_MANAGEMENT, TASK_MANAGEMENT,
)
from volunteer_connect.services.stats_service import stats_service
from volunteer_connect.services.task_service import task_service, task_out, assignment_out

router = APIRouter(prefix="/activities", tags=["activities"])


# ---- Stats and cross-activity listings (declared before /{activity_id}) ----

@router.get("/stats/total-hours")
async def stats_total_hours(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ok(data={"total_hours": stats_service.total_hours(db, user)})


@router.get("/stats/completed")
async def stats_completed(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ok(data={"completed_activities": stats_service.completed_activities(db, user)})


@router.get("/stats/my-activities")
async def stats_my_activities(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ok(data={"my_activities": stats_service.my_activities(db, user)})


@router.get("/stats/total-tasks")
async def stats_total_tasks(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return ok(data={"total_tasks": stats_service.total_tasks(db, user)})


@router.get("/stats/task-hours-by-activity")
async def stats_task_hours_by_activity(
    period: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Task hours per activity for last_week, last_month (default), last_year or a custom range."""
    result = stats_service.task_hours_by_activity(db, user, period, start_date, end_date)
    return ok(data=result, count=len(result["activities"]))


@router.get("/tasks/my-tasks")
async def my_tasks(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    tasks = task_service.my_tasks(db, user)
    return ok(data=tasks, count=len(tasks))


# ---- Activities ----

@router.post("", status_code=201)
async def create_activity(
    body: ActivityCreate,
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(ACTIVITY_MANAGEMENT)),
):
    """Create an activity. It is public only when the creator is an admin."""
    activity = activity_service.create(db, user, body.model_dump())
    return ok(
        data=activity_service.serialize(activity, user, include_participants=True),
        message="Activity created successfully",
    )


@router.get("")
async def list_activities(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    activities = [activity_service.serialize(a, user) for a in activity_service.list_visible(db, user)]
    return ok(data=activities, count=len(activities))


@router.get("/{activity_id}")
async def get_activity(activity_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    activity = activity_service.get_visible(db, activity_id, user)
    return ok(data=activity_service.serialize(activity, user, include_participants=True))


@router.put("/{activity_id}")
async def update_activity(
    activity_id: int,
    body: ActivityUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    activity = activity_service.update(db, activity_id, user, body.model_dump(exclude_unset=True))
    return ok(
        data=activity_service.serialize(activity, user, include_participants=True),
        message="Activity updated successfully",
    )


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    activity_service.soft_delete(db, activity_id, user)
    return ok(message="Activity deleted successfully")


# ---- Membership ----

@router.post("/{activity_id}/join")
async def join_activity(activity_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    participant = membership_service.join(db, activity_id, user)
    return ok(data=participant_out(participant), message="Successfully joined activity")


@router.post("/{activity_id}/leave")
async def leave_activity(activity_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    membership_service.leave(db, activity_id, user)
    return ok(message="Successfully left activity")


@router.get("/{activity_id}/participants")
async def list_participants(activity_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    activity = activity_service.get_visible(db, activity_id, user)
    participants = [participant_out(p) for p in activity.participants]
    return ok(data=participants, count=len(participants))


@router.post("/{activity_id}/participants", status_code=201)
async def add_participant(
    activity_id: int,
    body: ParticipantAdd,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    participant = membership_service.add_participant(db, activity_id, user, body.user_id, body.status)
    return ok(data=participant_out(participant), message="Participant added successfully")


@router.put("/{activity_id}/participants/{user_id}")
async def update_participant(
    activity_id: int,
    user_id: int,
    body: ParticipantStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    participant = membership_service.update_participant_status(db, activity_id, user, user_id, body.status)
    return ok(data=participant_out(participant), message="Participant updated successfully")


@router.delete("/{activity_id}/participants/{user_id}")
async def remove_participant(
    activity_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    membership_service.remove_participant(db, activity_id, user, user_id)
    return ok(message="Participant removed successfully")


# ---- Tasks ----

@router.get("/{activity_id}/tasks")
async def list_tasks(activity_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    tasks, progress = task_service.list_tasks(db, activity_id, user)
    return ok(data={"tasks": [task_out(t) for t in tasks], "progress": progress}, count=len(tasks))


@router.post("/{activity_id}/tasks", status_code=201)
async def create_task(
    activity_id: int,
    body: TaskCreate,
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(TASK_MANAGEMENT)),
):
    task = task_service.create_task(db, activity_id, user, body.model_dump())
    return ok(data=task_out(task), message="Task created successfully")


@router.get("/{activity_id}/tasks/{task_id}")
async def get_task(
    activity_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = task_service.get_visible_task(db, activity_id, task_id, user)
    return ok(data=task_out(task))


@router.put("/{activity_id}/tasks/{task_id}")
async def update_task(
    activity_id: int,
    task_id: int,
    body: TaskUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = task_service.update_task(db, activity_id, task_id, user, body.model_dump(exclude_unset=True))
    return ok(data=task_out(task), message="Task updated successfully")


@router.post("/{activity_id}/tasks/{task_id}/toggle")
async def toggle_task(
    activity_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task = task_service.toggle_task(db, activity_id, task_id, user)
    return ok(data=task_out(task), message="Task status updated")


@router.delete("/{activity_id}/tasks/{task_id}")
async def delete_task(
    activity_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task_service.delete_task(db, activity_id, task_id, user)
    return ok(message="Task deleted successfully")


# ---- Task assignments ----

@router.get("/{activity_id}/tasks/{task_id}/users")
async def list_task_users(
    activity_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    assignments = [assignment_out(a) for a in task_service.list_assignees(db, activity_id, task_id, user)]
    return ok(data=assignments, count=len(assignments))


@router.post("/{activity_id}/tasks/{task_id}/users")
async def add_task_user(
    activity_id: int,
    task_id: int,
    body: AssignmentCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    assignment, created = task_service.add_user_to_task(
        db, activity_id, task_id, user, body.user_id, body.status
    )
    message = "User assigned to task" if created else "User is already assigned to this task"
    return ok(data=assignment_out(assignment), message=message)


@router.put("/{activity_id}/tasks/{task_id}/users/{user_id}")
async def update_task_user(
    activity_id: int,
    task_id: int,
    user_id: int,
    body: AssignmentStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    assignment = task_service.update_assignment_status(db, activity_id, task_id, user, user_id, body.status)
    return ok(data=assignment_out(assignment), message="Assignment status updated")


@router.delete("/{activity_id}/tasks/{task_id}/users/{user_id}")
async def remove_task_user(
    activity_id: int,
    task_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    task_service.remove_user_from_task(db, activity_id, task_id, user, user_id)
    return ok(message="User removed from task")
