"""ActivityTask and TaskUser models."""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from volunteer_connect.db.base import Base, utcnow


class TaskStatus(str, enum.Enum):
    in_progress = "in-progress"
    completed = "completed"


class AssignmentStatus(str, enum.Enum):
    assigned = "assigned"
    in_progress = "in-progress"
    completed = "completed"
    cancelled = "cancelled"


class ActivityTask(Base):
    """Unit of work scoped to one activity.

    Completion lives only in ``status``; ``completed`` is a read-only view.
    """
    __tablename__ = "activity_tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    total_hours = Column(Integer, nullable=True)
    status = Column(
        Enum(
            TaskStatus,
            values_callable=lambda members: [m.value for m in members],
            native_enum=False,
            length=20,
            validate_strings=True,
        ),
        default=TaskStatus.in_progress,
        nullable=False,
        index=True,
    )
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    activity = relationship("Activity", back_populates="tasks")
    creator = relationship("User", back_populates="created_tasks", lazy="joined")
    assignments = relationship(
        "TaskUser",
        back_populates="task",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="TaskUser.assigned_at",
    )

    @property
    def completed(self) -> bool:
        return self.status == TaskStatus.completed


class TaskUser(Base):
    """Assignment of a user to a task."""
    __tablename__ = "task_users"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_user"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("activity_tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), default=AssignmentStatus.assigned.value, nullable=False, index=True)
    assigned_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    task = relationship("ActivityTask", back_populates="assignments")
    user = relationship("User", back_populates="task_assignments", lazy="joined")
