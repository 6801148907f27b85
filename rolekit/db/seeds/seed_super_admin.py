"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session

from rolekit.models import User, SUPER_ADMIN
from rolekit.core.security import hash_password
from rolekit.core.config import settings
from rolekit.services.role_service import role_service


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user if not already present."""
    if not role_service.find_role_by_slug(db, SUPER_ADMIN):
        print("⚠️  super-admin role not found. Run seed_roles first.")
        return

    existing = db.query(User).filter(User.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        role_service.assign_role(db, existing, SUPER_ADMIN)
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
        return

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        full_name="Super Admin",
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    role_service.assign_role(db, admin, SUPER_ADMIN)
    print(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")
