"""User model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from volunteer_connect.db.base import Base, utcnow
from volunteer_connect.models.role import ADMIN_ROLE_ID, VOLUNTEER_ROLE_ID


class User(Base):
    """Platform user with role-based access."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    profile_image = Column(String(500), nullable=True)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, default=VOLUNTEER_ROLE_ID)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    role = relationship("Role", lazy="joined")

    # Owned rows go with the user (mirrors ON DELETE CASCADE on the FKs)
    participations = relationship(
        "ActivityParticipant",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    task_assignments = relationship(
        "TaskUser",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    created_activities = relationship(
        "Activity",
        back_populates="creator",
        cascade="all, delete-orphan",
    )
    created_tasks = relationship(
        "ActivityTask",
        back_populates="creator",
        cascade="all, delete-orphan",
    )
    reset_tokens = relationship(
        "PasswordResetToken",
        cascade="all, delete-orphan",
    )

    @property
    def user_type(self) -> str:
        """Legacy string role kept for older clients; derived, never stored."""
        return "admin" if self.role_id == ADMIN_ROLE_ID else "volunteer"

    @property
    def role_name(self):
        return self.role.name if self.role else None
