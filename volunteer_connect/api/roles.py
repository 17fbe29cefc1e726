"""Roles API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from volunteer_connect.db.session import get_db
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import RoleCreate, RoleUpdate, ok
from volunteer_connect.services.permission_service import (
    require_admin, RequirePermission, ROLE_MANAGEMENT,
)
from volunteer_connect.services.role_service import role_service, role_out

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("")
async def list_roles(
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(ROLE_MANAGEMENT)),
):
    roles = role_service.list_roles(db)
    return ok(data=roles, count=len(roles))


@router.get("/{role_id}")
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(RequirePermission(ROLE_MANAGEMENT)),
):
    role = role_service.get_role(db, role_id)
    return ok(data=role_out(role, role_service.user_count(db, role.id)))


@router.post("", status_code=201)
async def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    role = role_service.create_role(db, body.model_dump())
    return ok(data=role_out(role), message="Role created successfully")


@router.put("/{role_id}")
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """Update a role. Built-in roles keep their names but their grants are editable."""
    role = role_service.update_role(db, role_id, body.model_dump(exclude_unset=True))
    return ok(data=role_out(role, role_service.user_count(db, role_id)), message="Role updated successfully")


@router.delete("/{role_id}")
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    role_service.delete_role(db, role_id)
    return ok(message="Role deleted successfully")
