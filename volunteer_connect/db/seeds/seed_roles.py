"""Seed the built-in roles, the permission catalog and default grants."""

from sqlalchemy.orm import Session
from volunteer_connect.models.role import (
    Role, RolePermission, Permission, ADMIN_ROLE_ID, VOLUNTEER_ROLE_ID,
)
from volunteer_connect.services.permission_service import (
    PERMISSION_CATALOG, ACTIVITY_MANAGEMENT, TASK_MANAGEMENT, AI_CHAT,
)

VOLUNTEER_DEFAULT_GRANTS = (AI_CHAT, ACTIVITY_MANAGEMENT, TASK_MANAGEMENT)


def seed_permissions(db: Session) -> None:
    """Insert catalog rows for every known permission key."""
    for key, description in PERMISSION_CATALOG.items():
        if not db.query(Permission).filter(Permission.permission_key == key).first():
            db.add(Permission(permission_key=key, description=description))
    db.commit()


def seed_roles(db: Session) -> None:
    """Insert the protected Admin (0) and Volunteer (1) roles if missing."""
    seed_permissions(db)
    roles_data = [
        {
            "id": ADMIN_ROLE_ID,
            "name": "Admin",
            "description": "Unrestricted access to users, roles and all activities",
            "grants": tuple(PERMISSION_CATALOG),
        },
        {
            "id": VOLUNTEER_ROLE_ID,
            "name": "Volunteer",
            "description": "Joins public activities and manages own activities and tasks",
            "grants": VOLUNTEER_DEFAULT_GRANTS,
        },
    ]

    for role_data in roles_data:
        role = db.query(Role).filter(Role.id == role_data["id"]).first()
        if role is not None:
            continue
        role = Role(
            id=role_data["id"],
            name=role_data["name"],
            description=role_data["description"],
            is_active=True,
            is_system_role=True,
        )
        db.add(role)
        for key in PERMISSION_CATALOG:
            role.permissions.append(
                RolePermission(permission_key=key, has_access=key in role_data["grants"])
            )

    db.commit()
    print(f"✅ Seeded {len(roles_data)} roles and {len(PERMISSION_CATALOG)} permissions")
