"""Role, permission grant, and permission catalog models for RBAC."""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from volunteer_connect.db.base import Base, utcnow

ADMIN_ROLE_ID = 0
VOLUNTEER_ROLE_ID = 1
PROTECTED_ROLE_IDS = (ADMIN_ROLE_ID, VOLUNTEER_ROLE_ID)


class Role(Base):
    """Named permission bundle.

    Ids are assigned explicitly (not auto-increment) so that the built-in
    Admin row can live at id 0 on MySQL.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system_role = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        lazy="selectin",
        cascade="all, delete-orphan",
    )


class RolePermission(Base):
    """A permission grant bound to a role."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_key", name="uq_role_permission"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_key = Column(String(100), nullable=False, index=True)
    has_access = Column(Boolean, default=False, nullable=False)

    role = relationship("Role", back_populates="permissions")


class Permission(Base):
    """Catalog of grantable permission keys."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    permission_key = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
