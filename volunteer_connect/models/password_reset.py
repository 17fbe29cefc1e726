"""Password reset token model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from volunteer_connect.db.base import Base, utcnow


class PasswordResetToken(Base):
    """Single-use reset token; only the sha256 of the emailed value is stored."""
    __tablename__ = "password_reset_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
