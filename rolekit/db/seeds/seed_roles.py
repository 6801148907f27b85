"""Seed the default permissions and roles into the database."""

from sqlalchemy.orm import Session

from rolekit.models import Permission, Role
from rolekit.services.role_service import role_service

PERMISSIONS = [
    # Posts
    {"name": "View Posts", "slug": "view-posts", "group": "posts", "description": "Can view all posts"},
    {"name": "Create Posts", "slug": "create-posts", "group": "posts", "description": "Can create new posts"},
    {"name": "Edit Posts", "slug": "edit-posts", "group": "posts", "description": "Can edit existing posts"},
    {"name": "Delete Posts", "slug": "delete-posts", "group": "posts", "description": "Can delete posts"},
    {"name": "Publish Posts", "slug": "publish-posts", "group": "posts", "description": "Can publish posts"},
    # Users
    {"name": "View Users", "slug": "view-users", "group": "users", "description": "Can view all users"},
    {"name": "Create Users", "slug": "create-users", "group": "users", "description": "Can create new users"},
    {"name": "Edit Users", "slug": "edit-users", "group": "users", "description": "Can edit user details"},
    {"name": "Delete Users", "slug": "delete-users", "group": "users", "description": "Can delete users"},
    {"name": "Manage Roles", "slug": "manage-roles", "group": "users", "description": "Can assign roles to users"},
    # Settings
    {"name": "View Settings", "slug": "view-settings", "group": "settings", "description": "Can view system settings"},
    {"name": "Edit Settings", "slug": "edit-settings", "group": "settings", "description": "Can modify system settings"},
    # Super admin
    {"name": "All Permissions", "slug": "*", "group": "admin", "description": "Super admin with all permissions"},
]

ROLES = [
    {
        "name": "Super Admin",
        "slug": "super-admin",
        "level": 100,
        "is_default": False,
        "description": "Has complete access to all features",
        "permissions": ["*"],
    },
    {
        "name": "Administrator",
        "slug": "admin",
        "level": 50,
        "is_default": False,
        "description": "Can manage most features",
        "permissions": [
            "view-posts", "create-posts", "edit-posts", "delete-posts", "publish-posts",
            "view-users", "create-users", "edit-users", "manage-roles",
            "view-settings", "edit-settings",
        ],
    },
    {
        "name": "Editor",
        "slug": "editor",
        "level": 25,
        "is_default": False,
        "description": "Can manage content",
        "permissions": [
            "view-posts", "create-posts", "edit-posts", "publish-posts",
            "view-users",
        ],
    },
    {
        "name": "Author",
        "slug": "author",
        "level": 10,
        "is_default": False,
        "description": "Can create and edit own content",
        "permissions": ["view-posts", "create-posts", "edit-posts"],
    },
    {
        "name": "User",
        "slug": "user",
        "level": 1,
        "is_default": True,
        "description": "Basic user with limited access",
        "permissions": ["view-posts"],
    },
]


def seed_permissions(db: Session) -> None:
    """Insert the default permissions that don't already exist."""
    for data in PERMISSIONS:
        if not db.query(Permission).filter(Permission.slug == data["slug"]).first():
            role_service.create_permission(db, **data)


def seed_roles(db: Session) -> None:
    """Insert default roles and sync their permission sets.

    Safe to run repeatedly: existing roles keep their metadata and end
    up with exactly the permissions listed here.
    """
    seed_permissions(db)

    for data in ROLES:
        data = dict(data)
        permissions = data.pop("permissions")
        role = db.query(Role).filter(Role.slug == data["slug"]).first()
        if not role:
            role = role_service.create_role(db, **data)
        role_service.sync_role_permissions(db, role, permissions)

    print(f"✅ Seeded {len(PERMISSIONS)} permissions and {len(ROLES)} roles")
