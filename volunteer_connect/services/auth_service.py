"""Auth service: registration, login, password reset and change."""

import hashlib
import logging
import re
import secrets
from datetime import timedelta
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from volunteer_connect.core.config import settings
from volunteer_connect.core.exceptions import (
    AuthenticationError, ResourceConflictError, ValidationError,
)
from volunteer_connect.core.security import hash_password, verify_password, create_user_token
from volunteer_connect.models.password_reset import PasswordResetToken
from volunteer_connect.models.role import VOLUNTEER_ROLE_ID
from volunteer_connect.models.user import User
from volunteer_connect.schemas.schemas import UserOut
from volunteer_connect.services.email_service import email_service
from volunteer_connect.services.lifecycle import utcnow

logger = logging.getLogger("volunteer_connect.auth")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RESET_REQUESTED_MESSAGE = "If an account with that email exists, a password reset link has been sent"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def check_password_length(password: str) -> None:
    if len(password or "") < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long"
        )


class AuthService:
    """Handles authentication and credential lifecycle."""

    @staticmethod
    def register(
        db: Session,
        name: str,
        email: str,
        phone: Optional[str],
        password: str,
        confirm_password: str,
    ) -> User:
        """Create a volunteer account (role 1)."""
        name = (name or "").strip()
        email = normalize_email(email)
        if not name or not email or not password:
            raise ValidationError("Name, email and password are required")
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format")
        if password != confirm_password:
            raise ValidationError("Passwords do not match")
        check_password_length(password)

        if db.query(User).filter(User.email == email).first():
            raise ResourceConflictError("User with this email already exists")

        user = User(
            name=name,
            email=email,
            phone=(phone or "").strip() or None,
            hashed_password=hash_password(password),
            role_id=VOLUNTEER_ROLE_ID,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Registered user %s", user.id)
        return user

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Check credentials and issue a bearer token.

        Raises:
            AuthenticationError: If credentials are invalid or the account is deactivated.
        """
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        user.last_login_at = utcnow()
        db.commit()
        db.refresh(user)
        logger.info("User %s logged in", user.id)

        return {
            "token": create_user_token(user),
            "token_type": "bearer",
            "user": UserOut.model_validate(user),
        }

    @staticmethod
    async def forgot_password(db: Session, email: str) -> None:
        """Issue and mail a reset token. Never reveals whether the address exists."""
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown or inactive address")
            return

        db.query(PasswordResetToken).filter(
            PasswordResetToken.user_id == user.id,
            PasswordResetToken.used.is_(False),
        ).update({"used": True}, synchronize_session=False)

        raw_token = secrets.token_hex(32)
        db.add(PasswordResetToken(
            user_id=user.id,
            token_hash=hash_reset_token(raw_token),
            expires_at=utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRY_MINUTES),
            used=False,
        ))
        db.commit()

        sent = await email_service.send_password_reset_email(user.email, user.name, raw_token)
        if not sent:
            logger.warning("Password reset email for user %s was not delivered", user.id)

    @staticmethod
    def reset_password(db: Session, token: str, new_password: str) -> User:
        check_password_length(new_password)
        record = (
            db.query(PasswordResetToken)
            .filter(PasswordResetToken.token_hash == hash_reset_token(token or ""))
            .first()
        )
        if record is None or record.used or record.expires_at < utcnow():
            raise ValidationError("Invalid or expired reset token")

        user = db.query(User).filter(User.id == record.user_id).first()
        if user is None or not user.is_active:
            raise ValidationError("Invalid or expired reset token")

        user.hashed_password = hash_password(new_password)
        record.used = True
        db.commit()
        logger.info("Password reset completed for user %s", user.id)
        return user

    @staticmethod
    def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")
        check_password_length(new_password)
        user.hashed_password = hash_password(new_password)
        db.commit()


auth_service = AuthService()
