"""Role service: role CRUD and wholesale permission grant replacement."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from volunteer_connect.core.exceptions import (
    ValidationError, ResourceNotFoundError, ResourceConflictError,
)
from volunteer_connect.models.role import Role, RolePermission, Permission, PROTECTED_ROLE_IDS
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import RoleOut, PermissionGrant

logger = logging.getLogger("volunteer_connect.roles")


def role_out(role: Role, user_count: int = 0) -> RoleOut:
    return RoleOut(
        id=role.id,
        name=role.name,
        description=role.description,
        is_active=role.is_active,
        is_system_role=role.is_system_role,
        permissions=[PermissionGrant.model_validate(p) for p in role.permissions],
        user_count=user_count,
    )


class RoleService:

    @staticmethod
    def get_role(db: Session, role_id: int) -> Role:
        role = db.query(Role).filter(Role.id == role_id).first()
        if role is None:
            raise ResourceNotFoundError("Role not found")
        return role

    @staticmethod
    def user_count(db: Session, role_id: int) -> int:
        return db.query(User).filter(User.role_id == role_id).count()

    @staticmethod
    def list_roles(db: Session) -> List[RoleOut]:
        counts = dict(
            db.query(User.role_id, func.count(User.id)).group_by(User.role_id).all()
        )
        roles = db.query(Role).order_by(Role.id).all()
        return [role_out(r, counts.get(r.id, 0)) for r in roles]

    @staticmethod
    def _validate_grants(db: Session, grants: List[Dict[str, Any]]) -> Dict[str, bool]:
        known = {k for (k,) in db.query(Permission.permission_key).all()}
        resolved: Dict[str, bool] = {}
        unknown = []
        for g in grants:
            key = g["permission_key"]
            if key not in known:
                unknown.append(key)
            resolved[key] = bool(g.get("has_access", True))
        if unknown:
            raise ValidationError(f"Unknown permission keys: {', '.join(unknown)}")
        return resolved

    @staticmethod
    def _replace_grants(db: Session, role: Role, grants: Dict[str, bool]) -> None:
        role.permissions.clear()
        # Deletes must reach the database before inserts that reuse (role, key)
        db.flush()
        for key, has_access in grants.items():
            role.permissions.append(RolePermission(permission_key=key, has_access=has_access))

    @staticmethod
    def _check_name_free(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Role).filter(Role.name == name)
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first():
            raise ResourceConflictError("A role with this name already exists")

    @staticmethod
    def create_role(db: Session, data: Dict[str, Any]) -> Role:
        name = data["name"].strip()
        if not name:
            raise ValidationError("Role name is required")
        RoleService._check_name_free(db, name)
        grants = RoleService._validate_grants(db, data.get("permissions") or [])

        # Ids are explicit; custom roles continue after the highest existing id
        next_id = (db.query(func.max(Role.id)).scalar() or 0) + 1
        role = Role(
            id=max(next_id, 2),
            name=name,
            description=data.get("description"),
            is_active=data.get("is_active", True),
            is_system_role=False,
        )
        db.add(role)
        RoleService._replace_grants(db, role, grants)
        db.commit()
        db.refresh(role)
        logger.info("Role %s (%s) created", role.id, role.name)
        return role

    @staticmethod
    def update_role(db: Session, role_id: int, data: Dict[str, Any]) -> Role:
        role = RoleService.get_role(db, role_id)

        if data.get("name") is not None:
            name = data["name"].strip()
            if not name:
                raise ValidationError("Role name is required")
            if name != role.name:
                if role.id in PROTECTED_ROLE_IDS:
                    raise ValidationError("Built-in roles cannot be renamed")
                RoleService._check_name_free(db, name, exclude_id=role.id)
                role.name = name
        if "description" in data:
            role.description = data["description"]
        if data.get("is_active") is not None:
            if role.id in PROTECTED_ROLE_IDS and not data["is_active"]:
                raise ValidationError("Built-in roles cannot be deactivated")
            role.is_active = data["is_active"]
        if data.get("permissions") is not None:
            RoleService._replace_grants(db, role, RoleService._validate_grants(db, data["permissions"]))

        db.commit()
        db.refresh(role)
        logger.info("Role %s updated", role.id)
        return role

    @staticmethod
    def delete_role(db: Session, role_id: int) -> None:
        role = RoleService.get_role(db, role_id)
        if role.id in PROTECTED_ROLE_IDS:
            raise ValidationError("Built-in roles cannot be deleted")
        in_use = RoleService.user_count(db, role.id)
        if in_use:
            raise ResourceConflictError(f"Role is assigned to {in_use} user(s) and cannot be deleted")
        db.delete(role)
        db.commit()
        logger.info("Role %s deleted", role_id)

    @staticmethod
    def catalog(db: Session) -> List[Permission]:
        return db.query(Permission).order_by(Permission.permission_key).all()


role_service = RoleService()
