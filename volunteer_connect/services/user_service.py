"""User service: profile edits and admin-side account management."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from volunteer_connect.core.exceptions import (
    ValidationError, AuthorizationError, ResourceNotFoundError, ResourceConflictError,
)
from volunteer_connect.models.role import Role
from volunteer_connect.models.user import User
from volunteer_connect.services.auth_service import EMAIL_RE, normalize_email
from volunteer_connect.services.permission_service import is_admin, role_kind, RoleKind

logger = logging.getLogger("volunteer_connect.users")


class UserService:

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise ResourceNotFoundError("User not found")
        return user

    @staticmethod
    def get_visible_user(db: Session, user_id: int, viewer: User) -> User:
        if viewer.id != user_id and not is_admin(viewer):
            raise AuthorizationError("You can only view your own profile")
        return UserService.get_user(db, user_id)

    @staticmethod
    def list_users(db: Session, page: int = 1, page_size: int = 20):
        """List all users with pagination."""
        total = db.query(User).count()
        users = (
            db.query(User)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page, "page_size": page_size}

    @staticmethod
    def update_profile(db: Session, user: User, changes: Dict[str, Any]) -> User:
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Name cannot be empty")
            user.name = name
        if "phone" in changes:
            user.phone = (changes["phone"] or "").strip() or None
        if "profile_image" in changes:
            user.profile_image = changes["profile_image"] or None
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def admin_update(db: Session, user_id: int, changes: Dict[str, Any]) -> User:
        user = UserService.get_user(db, user_id)
        if "email" in changes:
            email = normalize_email(changes["email"])
            if not EMAIL_RE.match(email):
                raise ValidationError("Invalid email format")
            clash = db.query(User).filter(User.email == email, User.id != user.id).first()
            if clash:
                raise ResourceConflictError("Email is already in use by another account")
            user.email = email
        return UserService.update_profile(
            db, user, {k: v for k, v in changes.items() if k in ("name", "phone")}
        )

    @staticmethod
    def change_role(db: Session, actor: User, user_id: int, role_id: int) -> User:
        user = UserService.get_user(db, user_id)
        role = db.query(Role).filter(Role.id == role_id).first()
        if role is None or not role.is_active:
            raise ValidationError("Role does not exist or is inactive")
        if user.id == actor.id and is_admin(actor) and role_kind(role_id) != RoleKind.admin:
            raise ValidationError("You cannot remove your own admin role")
        old_role_id = user.role_id
        user.role_id = role.id
        db.commit()
        db.refresh(user)
        logger.info("User %s role changed %s -> %s by %s", user.id, old_role_id, role.id, actor.id)
        return user

    @staticmethod
    def set_status(db: Session, actor: User, user_id: int, is_active: bool) -> User:
        user = UserService.get_user(db, user_id)
        if user.id == actor.id and not is_active:
            raise ValidationError("You cannot deactivate your own account")
        user.is_active = is_active
        db.commit()
        db.refresh(user)
        logger.info("User %s %s by %s", user.id, "activated" if is_active else "deactivated", actor.id)
        return user

    @staticmethod
    def delete_user(db: Session, actor: User, user_id: int) -> None:
        """Delete a user along with their participations, assignments, tokens and authored content."""
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")
        user = UserService.get_user(db, user_id)
        db.delete(user)
        db.commit()
        logger.info("User %s deleted by %s", user_id, actor.id)


user_service = UserService()
