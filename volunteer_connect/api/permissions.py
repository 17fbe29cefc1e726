"""Permissions API router: catalog and the caller's grants."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from volunteer_connect.core.security import get_current_user
from volunteer_connect.db.session import get_db
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import PermissionOut, ok
from volunteer_connect.services.permission_service import granted_permissions, has_permission
from volunteer_connect.services.role_service import role_service

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("")
async def list_permissions(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    catalog = [PermissionOut.model_validate(p) for p in role_service.catalog(db)]
    return ok(data=catalog, count=len(catalog))


@router.get("/me")
async def my_permissions(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    keys = granted_permissions(db, user)
    return ok(data={"role_id": user.role_id, "user_type": user.user_type, "permissions": keys})


@router.get("/check/{permission_key}")
async def check_permission(
    permission_key: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return ok(data={
        "permission_key": permission_key,
        "has_access": has_permission(db, user, permission_key),
    })
