"""Models package: import all models so metadata.create_all sees every table."""

from volunteer_connect.models.role import Role, RolePermission, Permission
from volunteer_connect.models.user import User
from volunteer_connect.models.activity import Activity, ActivityParticipant, ParticipantStatus
from volunteer_connect.models.task import ActivityTask, TaskUser, TaskStatus, AssignmentStatus
from volunteer_connect.models.password_reset import PasswordResetToken

__all__ = [
    "Role", "RolePermission", "Permission", "User",
    "Activity", "ActivityParticipant", "ParticipantStatus",
    "ActivityTask", "TaskUser", "TaskStatus", "AssignmentStatus",
    "PasswordResetToken",
]
