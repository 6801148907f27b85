"""Models package — import all models so the mappers can resolve each other."""

from rolekit.models.permission import Permission, WILDCARD
from rolekit.models.role import Role, SUPER_ADMIN
from rolekit.models.associations import RolePermission, UserRole, UserPermission
from rolekit.models.user import User
from rolekit.models.setting import SystemSetting
from rolekit.models.audit_log import AuditLog

__all__ = [
    "Permission", "Role", "RolePermission", "UserRole", "UserPermission",
    "User", "SystemSetting", "AuditLog", "WILDCARD", "SUPER_ADMIN",
]
