"""Permission model."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from sqlalchemy.orm import relationship
from rolekit.db.base import Base

WILDCARD = "*"


class Permission(Base):
    """A single capability, addressed by its slug. ``*`` means every capability."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    group = Column(String(50), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_links = relationship(
        "RolePermission", back_populates="permission", cascade="all, delete-orphan"
    )
    user_links = relationship(
        "UserPermission", back_populates="permission", cascade="all, delete-orphan"
    )
    roles = relationship("Role", secondary="role_permission", viewonly=True)

    def __repr__(self) -> str:
        return f"<Permission {self.slug}>"
