"""Seed the bootstrap administrator from env vars."""

from sqlalchemy.orm import Session
from volunteer_connect.models.user import User
from volunteer_connect.models.role import Role, ADMIN_ROLE_ID
from volunteer_connect.core.security import hash_password
from volunteer_connect.core.config import settings


def seed_admin(db: Session) -> None:
    """Create the admin user if not already present."""
    if not db.query(Role).filter(Role.id == ADMIN_ROLE_ID).first():
        print("⚠️  Admin role not found. Run seed_roles first.")
        return

    email = settings.ADMIN_EMAIL.strip().lower()
    if db.query(User).filter(User.email == email).first():
        print(f"ℹ️  Admin '{email}' already exists, skipping.")
        return

    admin = User(
        name=settings.ADMIN_NAME,
        email=email,
        hashed_password=hash_password(settings.ADMIN_PASSWORD),
        is_active=True,
        role_id=ADMIN_ROLE_ID,
    )
    db.add(admin)
    db.commit()
    print(f"✅ Created admin: {email}")
