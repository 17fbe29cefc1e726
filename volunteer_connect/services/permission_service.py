"""Role/permission resolver and the FastAPI dependencies built on it."""

import enum
import logging
from typing import Any, List

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from volunteer_connect.core.security import get_current_user
from volunteer_connect.db.session import get_db
from volunteer_connect.models.role import (
    Role, RolePermission, ADMIN_ROLE_ID, VOLUNTEER_ROLE_ID,
)
from volunteer_connect.models.user import User

logger = logging.getLogger("volunteer_connect.permissions")

USER_MANAGEMENT = "user_management"
ROLE_MANAGEMENT = "role_management"
ACTIVITY_MANAGEMENT = "activity_management"
TASK_MANAGEMENT = "task_management"
AI_CHAT = "ai_chat"

PERMISSION_CATALOG = {
    USER_MANAGEMENT: "View and manage user accounts",
    ROLE_MANAGEMENT: "View roles and their permission grants",
    ACTIVITY_MANAGEMENT: "Create and manage activities",
    TASK_MANAGEMENT: "Create and manage activity tasks",
    AI_CHAT: "Use the AI chat assistant",
}


class RoleKind(str, enum.Enum):
    admin = "admin"
    volunteer = "volunteer"
    custom = "custom"


def role_kind(role_id: Any) -> RoleKind:
    if role_id == ADMIN_ROLE_ID:
        return RoleKind.admin
    if role_id == VOLUNTEER_ROLE_ID:
        return RoleKind.volunteer
    return RoleKind.custom


def _get(principal: Any, key: str):
    if isinstance(principal, dict):
        return principal.get(key)
    return getattr(principal, key, None)


def is_admin(principal: Any) -> bool:
    """True for role 0, or when a legacy ``user_type == "admin"`` marker is present.

    ``principal`` may be a User row or a decoded token payload.
    """
    if principal is None:
        return False
    role_id = _get(principal, "role_id")
    if role_id is None and isinstance(principal, dict):
        role_id = principal.get("role")
    if role_id is not None and role_kind(role_id) == RoleKind.admin:
        return True
    return _get(principal, "user_type") == "admin"


def has_permission(db: Session, user: User, key: str) -> bool:
    """Fail-closed permission check: no active role or no granting row means no."""
    if is_admin(user):
        return True
    if key not in PERMISSION_CATALOG:
        return False
    grant = (
        db.query(RolePermission)
        .join(Role, Role.id == RolePermission.role_id)
        .filter(
            RolePermission.role_id == user.role_id,
            RolePermission.permission_key == key,
            RolePermission.has_access.is_(True),
            Role.is_active.is_(True),
        )
        .first()
    )
    return grant is not None


def granted_permissions(db: Session, user: User) -> List[str]:
    if is_admin(user):
        return sorted(PERMISSION_CATALOG)
    rows = (
        db.query(RolePermission.permission_key)
        .join(Role, Role.id == RolePermission.role_id)
        .filter(
            RolePermission.role_id == user.role_id,
            RolePermission.has_access.is_(True),
            Role.is_active.is_(True),
        )
        .all()
    )
    return sorted({key for (key,) in rows if key in PERMISSION_CATALOG})


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that admits administrators only."""
    if not is_admin(user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


class RequirePermission:
    """Dependency that checks the caller's role grants the given permission key."""

    def __init__(self, permission_key: str):
        self.permission_key = permission_key

    async def __call__(
        self,
        user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
    ) -> User:
        if not has_permission(db, user, self.permission_key):
            logger.info("Permission %s denied for user %s", self.permission_key, user.id)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission '{self.permission_key}' required",
            )
        return user
