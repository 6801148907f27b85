"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from rolekit.db.base import Base
from rolekit.models.permission import WILDCARD

SUPER_ADMIN = "super-admin"


class Role(Base):
    """Named bundle of permissions with a display level and a default flag.

    ``level`` orders roles for display only; it is never compared during
    authorization. Roles flagged ``is_default`` are handed to new users.
    """
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    level = Column(Integer, nullable=False, default=0, index=True)
    is_default = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    permission_links = relationship(
        "RolePermission", back_populates="role", cascade="all, delete-orphan"
    )
    user_links = relationship(
        "UserRole", back_populates="role", cascade="all, delete-orphan"
    )
    permissions = relationship(
        "Permission", secondary="role_permission", viewonly=True, lazy="selectin"
    )
    users = relationship("User", secondary="user_role", viewonly=True)

    def has_permission(self, permission) -> bool:
        """Check the role's own permission set by slug or Permission.

        The wildcard is not expanded here: a role holding ``*`` only
        matches ``has_permission("*")``.
        """
        if isinstance(permission, str):
            return any(p.slug == permission for p in self.permissions)
        return any(p.id == permission.id for p in self.permissions)

    def is_super_admin(self) -> bool:
        return self.slug == SUPER_ADMIN or self.has_permission(WILDCARD)

    def __repr__(self) -> str:
        return f"<Role {self.slug} level={self.level}>"
