"""User model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from rolekit.db.base import Base


class User(Base):
    """Platform user; the subject of every role and permission check."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role_links = relationship(
        "UserRole", back_populates="user", cascade="all, delete-orphan"
    )
    permission_links = relationship(
        "UserPermission", back_populates="user", cascade="all, delete-orphan"
    )
    roles = relationship("Role", secondary="user_role", viewonly=True, lazy="selectin")
    permissions = relationship(
        "Permission", secondary="user_permission", viewonly=True, lazy="selectin"
    )
