"""Admin API router."""

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from volunteer_connect.db.session import get_db
from volunteer_connect.models.activity import Activity, ActivityParticipant
from volunteer_connect.models.role import Role
from volunteer_connect.models.task import ActivityTask, TaskStatus
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import ok
from volunteer_connect.services.permission_service import require_admin

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats")
async def get_system_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Platform-wide counts (admin only)."""
    return ok(data={
        "total_users": db.query(func.count(User.id)).scalar(),
        "active_users": db.query(func.count(User.id)).filter(User.is_active.is_(True)).scalar(),
        "total_roles": db.query(func.count(Role.id)).scalar(),
        "total_activities": db.query(func.count(Activity.id)).filter(Activity.is_active.is_(True)).scalar(),
        "public_activities": db.query(func.count(Activity.id)).filter(
            Activity.is_active.is_(True), Activity.is_public.is_(True)
        ).scalar(),
        "total_participations": db.query(func.count(ActivityParticipant.id)).scalar(),
        "total_tasks": db.query(func.count(ActivityTask.id)).scalar(),
        "completed_tasks": db.query(func.count(ActivityTask.id)).filter(
            ActivityTask.status == TaskStatus.completed
        ).scalar(),
    })
