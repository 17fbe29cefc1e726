"""Activity and ActivityParticipant models."""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from volunteer_connect.db.base import Base, utcnow


class ParticipantStatus(str, enum.Enum):
    registered = "registered"
    confirmed = "confirmed"
    cancelled = "cancelled"


class Activity(Base):
    """A volunteer event owned by its creator.

    ``is_public`` is decided server-side from the creator's role and the
    temporal status is never stored.
    """
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    organization_name = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, default=False, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    max_participants = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    creator = relationship("User", back_populates="created_activities", lazy="joined")
    participants = relationship(
        "ActivityParticipant",
        back_populates="activity",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ActivityParticipant.joined_at",
    )
    tasks = relationship(
        "ActivityTask",
        back_populates="activity",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ActivityTask.id",
    )


class ActivityParticipant(Base):
    """Join record; one per (activity, user)."""
    __tablename__ = "activity_participants"
    __table_args__ = (
        UniqueConstraint("activity_id", "user_id", name="uq_activity_participant"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    activity_id = Column(Integer, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(50), default=ParticipantStatus.registered.value, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    activity = relationship("Activity", back_populates="participants")
    user = relationship("User", back_populates="participations", lazy="joined")
