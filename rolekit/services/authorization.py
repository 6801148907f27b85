"""Authorization evaluator — role and permission checks for one subject.

An ``Authorizer`` is bound to a single user and a single DB session, i.e.
to one request. It answers every check from the database, with two
layers of memoisation for the super-admin predicate, which runs on every
permission check:

* on the instance, for the lifetime of the request;
* in redis under ``rbac:super_admin:{user_id}`` when
  ``RBAC_CACHE_PERMISSIONS`` is on. Every mutation that can change the
  answer forgets that key (see ``forget_cached_decisions``).
"""

import logging
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from sqlalchemy import exists
from sqlalchemy.orm import Session

from rolekit.core.config import settings
from rolekit.models import (
    Permission, Role, RolePermission, User, UserPermission, UserRole,
    SUPER_ADMIN, WILDCARD,
)
from rolekit.services.cache_service import CacheService, cache_service

logger = logging.getLogger("rolekit.authorization")


@runtime_checkable
class Authorizable(Protocol):
    """Anything that can answer role and permission checks."""

    def has_role(self, *roles: str) -> bool:
        ...

    def has_permission(self, *permissions: str) -> bool:
        ...


def super_admin_cache_key(user_id: int) -> str:
    return f"rbac:super_admin:{user_id}"


def forget_cached_decisions(user_ids: Iterable[int], cache: Optional[CacheService] = None) -> None:
    """Drop cached authorization state for the given users."""
    keys = [super_admin_cache_key(uid) for uid in set(user_ids)]
    if keys:
        (cache or cache_service).forget_many(keys)
        logger.debug("Forgot cached decisions for %d user(s)", len(keys))


class Authorizer:
    """Evaluates role and permission checks for a single subject.

    Pass ``skip_auth_check=True`` to make every check pass for this
    instance only (seeding, maintenance scripts). It never leaks to other
    requests because it lives on the instance.
    """

    def __init__(
        self,
        db: Session,
        user: User,
        cache: Optional[CacheService] = None,
        skip_auth_check: bool = False,
        use_cache: Optional[bool] = None,
    ):
        self.db = db
        self.user = user
        self.cache = cache or cache_service
        self.skip_auth_check = skip_auth_check
        self.use_cache = settings.RBAC_CACHE_PERMISSIONS if use_cache is None else use_cache
        self._super_admin: Optional[bool] = None

    # ---- Roles ----
    def has_role(self, *roles: str) -> bool:
        """True if the user holds any of the given role slugs."""
        if self.skip_auth_check:
            return True
        if not roles:
            return False
        return self._holds_any_role(roles)

    def has_all_roles(self, *roles: str) -> bool:
        if self.skip_auth_check:
            return True
        for role in roles:
            if not self.has_role(role):
                return False
        return True

    def has_any_role(self, *roles: str) -> bool:
        return self.has_role(*roles)

    # ---- Permissions ----
    def has_permission(self, *permissions: str) -> bool:
        """True if the user may use any of the given permission slugs.

        Super-admins pass every check, even for slugs that were never
        defined. Otherwise a slug passes when it is granted directly,
        when ``*`` is granted directly, or when any held role grants it.
        """
        if self.skip_auth_check:
            return True
        if self.is_super_admin():
            return True
        if len(permissions) != 1:
            return any(self.has_permission(p) for p in permissions)

        permission = permissions[0]
        if self._holds_direct_permission(permission, WILDCARD):
            return True
        return self._has_permission_via_role(permission)

    def has_all_permissions(self, *permissions: str) -> bool:
        if self.skip_auth_check:
            return True
        for permission in permissions:
            if not self.has_permission(permission):
                return False
        return True

    def has_any_permission(self, *permissions: str) -> bool:
        return self.has_permission(*permissions)

    def is_super_admin(self) -> bool:
        """Super-admin role, a direct ``*`` grant, or a role granting ``*``."""
        if self._super_admin is None:
            if self.use_cache:
                self._super_admin = bool(self.cache.remember(
                    super_admin_cache_key(self.user.id),
                    self._compute_super_admin,
                    settings.RBAC_CACHE_TTL,
                ))
            else:
                self._super_admin = self._compute_super_admin()
        return self._super_admin

    def forget(self) -> None:
        """Drop the per-request memo (after mutating this user in-request)."""
        self._super_admin = None

    # ---- Listing ----
    def get_roles(self) -> List[Role]:
        return (
            self.db.query(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .filter(UserRole.user_id == self.user.id)
            .order_by(Role.level.desc(), Role.slug.asc())
            .all()
        )

    def get_role_slugs(self) -> List[str]:
        return [role.slug for role in self.get_roles()]

    def get_direct_permissions(self) -> List[Permission]:
        return (
            self.db.query(Permission)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.user_id == self.user.id)
            .order_by(Permission.id.asc())
            .all()
        )

    def get_all_permissions(self) -> List[Permission]:
        """Direct and role-derived permissions, unique by id."""
        merged = {p.id: p for p in self.get_direct_permissions()}
        for role in self.get_roles():
            for permission in role.permissions:
                merged.setdefault(permission.id, permission)
        return [merged[pid] for pid in sorted(merged)]

    def get_permission_slugs(self) -> List[str]:
        return sorted(p.slug for p in self.get_all_permissions())

    # ---- Internals ----
    def _compute_super_admin(self) -> bool:
        return (
            self._holds_any_role([SUPER_ADMIN])
            or self._holds_direct_permission(WILDCARD)
            or self._any_role_grants(WILDCARD)
        )

    def _holds_any_role(self, slugs) -> bool:
        query = (
            exists()
            .where(UserRole.role_id == Role.id)
            .where(UserRole.user_id == self.user.id)
            .where(Role.slug.in_(list(slugs)))
        )
        return bool(self.db.query(query).scalar())

    def _holds_direct_permission(self, *slugs: str) -> bool:
        query = (
            exists()
            .where(UserPermission.permission_id == Permission.id)
            .where(UserPermission.user_id == self.user.id)
            .where(Permission.slug.in_(list(slugs)))
        )
        return bool(self.db.query(query).scalar())

    def _any_role_grants(self, slug: str) -> bool:
        query = (
            exists()
            .where(UserRole.user_id == self.user.id)
            .where(RolePermission.role_id == UserRole.role_id)
            .where(RolePermission.permission_id == Permission.id)
            .where(Permission.slug == slug)
        )
        return bool(self.db.query(query).scalar())

    def _has_permission_via_role(self, permission: str) -> bool:
        for role in self.get_roles():
            if role.has_permission(permission):
                return True
        return False
