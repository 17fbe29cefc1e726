"""Users API router: own profile and admin account management."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from volunteer_connect.core.security import get_current_user
from volunteer_connect.db.session import get_db
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import (
    UserOut, ProfileUpdateRequest, AdminUserUpdateRequest, RoleChangeRequest,
    StatusChangeRequest, ChangePasswordRequest, ok,
)
from volunteer_connect.services.auth_service import auth_service
from volunteer_connect.services.permission_service import (
    require_admin, RequirePermission, USER_MANAGEMENT,
)
from volunteer_connect.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    """Get current user profile."""
    return ok(data=UserOut.model_validate(user))


@router.put("/me")
async def update_me(
    body: ProfileUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = user_service.update_profile(db, user, body.model_dump(exclude_unset=True))
    return ok(data=UserOut.model_validate(updated), message="Profile updated successfully")


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    auth_service.change_password(db, user, body.current_password, body.new_password)
    return ok(message="Password changed successfully")


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(USER_MANAGEMENT)),
):
    """List all users (requires user_management)."""
    result = user_service.list_users(db, page, page_size)
    return ok(
        data={
            "users": [UserOut.model_validate(u) for u in result["users"]],
            "total": result["total"],
            "page": result["page"],
            "page_size": result["page_size"],
        },
        count=len(result["users"]),
    )


@router.get("/{user_id}")
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    target = user_service.get_visible_user(db, user_id, user)
    return ok(data=UserOut.model_validate(target))


@router.put("/{user_id}")
async def admin_update_user(
    user_id: int,
    body: AdminUserUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Update a user's name, email or phone (admin only)."""
    updated = user_service.admin_update(db, user_id, body.model_dump(exclude_unset=True))
    return ok(data=UserOut.model_validate(updated), message="User updated successfully")


@router.put("/{user_id}/role")
async def change_user_role(
    user_id: int,
    body: RoleChangeRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    target = user_service.change_role(db, admin, user_id, body.role_id)
    return ok(data=UserOut.model_validate(target), message="User role updated successfully")


@router.put("/{user_id}/status")
async def change_user_status(
    user_id: int,
    body: StatusChangeRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    target = user_service.set_status(db, admin, user_id, body.is_active)
    state = "activated" if target.is_active else "deactivated"
    return ok(data=UserOut.model_validate(target), message=f"User {state} successfully")


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user_service.delete_user(db, admin, user_id)
    return ok(message="User deleted successfully")
