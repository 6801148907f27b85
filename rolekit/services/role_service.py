"""Role service — persistence of roles, permissions and their grants."""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rolekit.core.exceptions import DuplicateSlugError, NotFoundError
from rolekit.db.session import transaction
from rolekit.models import (
    Permission, Role, RolePermission, User, UserPermission, UserRole,
)
from rolekit.services.authorization import forget_cached_decisions

logger = logging.getLogger("rolekit.roles")

ROLE_FIELDS = ("name", "description", "level", "is_default")
PERMISSION_FIELDS = ("name", "description", "group")


def _attach(db: Session, link_model, owner_field: str, owner_id: int, target_field: str, target_ids) -> List[int]:
    current = {
        getattr(row, target_field)
        for row in db.query(link_model).filter(getattr(link_model, owner_field) == owner_id)
    }
    added = [tid for tid in dict.fromkeys(target_ids) if tid not in current]
    for tid in added:
        db.add(link_model(**{owner_field: owner_id, target_field: tid}))
    return added


def _detach(db: Session, link_model, owner_field: str, owner_id: int, target_field: str, target_ids) -> List[int]:
    wanted = set(target_ids)
    removed = []
    for row in db.query(link_model).filter(getattr(link_model, owner_field) == owner_id).all():
        if getattr(row, target_field) in wanted:
            removed.append(getattr(row, target_field))
            db.delete(row)
    return removed


def _sync(db: Session, link_model, owner_field: str, owner_id: int, target_field: str, target_ids) -> Dict[str, List[int]]:
    """Make the owner's link set equal ``target_ids`` using set differences."""
    rows = db.query(link_model).filter(getattr(link_model, owner_field) == owner_id).all()
    current = {getattr(row, target_field) for row in rows}
    wanted = set(target_ids)

    for row in rows:
        if getattr(row, target_field) not in wanted:
            db.delete(row)
    attached = sorted(wanted - current)
    for tid in attached:
        db.add(link_model(**{owner_field: owner_id, target_field: tid}))

    return {"attached": attached, "detached": sorted(current - wanted)}


class RoleService:
    """Creates, finds and links roles, permissions and users.

    Every mutation runs in one transaction and, once committed, forgets
    the cached authorization state of each user it may affect.
    """

    # ---- Roles ----
    @staticmethod
    def create_role(
        db: Session,
        name: str,
        slug: str,
        level: int = 0,
        is_default: bool = False,
        description: Optional[str] = None,
    ) -> Role:
        """Create a role.

        Raises:
            DuplicateSlugError: If a role with this slug exists.
        """
        if RoleService.find_role_by_slug(db, slug):
            raise DuplicateSlugError("role", slug)
        role = Role(name=name, slug=slug, level=level, is_default=is_default, description=description)
        try:
            with transaction(db):
                db.add(role)
        except IntegrityError as e:
            raise DuplicateSlugError("role", slug) from e
        db.refresh(role)
        logger.info("Created role %s (level %s)", slug, level)
        return role

    @staticmethod
    def find_role_by_slug(db: Session, slug: str) -> Optional[Role]:
        return db.query(Role).filter(Role.slug == slug).first()

    @staticmethod
    def find_role_by_slug_or_fail(db: Session, slug: str) -> Role:
        role = RoleService.find_role_by_slug(db, slug)
        if not role:
            raise NotFoundError(f"Role '{slug}' not found")
        return role

    @staticmethod
    def list_roles(db: Session, direction: str = "asc") -> List[Role]:
        """All roles ordered by level."""
        order = Role.level.desc() if direction == "desc" else Role.level.asc()
        return db.query(Role).order_by(order, Role.slug.asc()).all()

    @staticmethod
    def default_roles(db: Session) -> List[Role]:
        return db.query(Role).filter(Role.is_default.is_(True)).all()

    @staticmethod
    def update_role(db: Session, role: Union[Role, str], **fields) -> Role:
        """Update role metadata. The slug is immutable."""
        role = RoleService._role(db, role)
        with transaction(db):
            for field, value in fields.items():
                if field in ROLE_FIELDS and value is not None:
                    setattr(role, field, value)
        db.refresh(role)
        return role

    @staticmethod
    def delete_role(db: Session, role: Union[Role, str]) -> bool:
        role = RoleService._role(db, role)
        slug = role.slug
        holders = RoleService._role_holder_ids(db, [role.id])
        with transaction(db):
            db.delete(role)
        forget_cached_decisions(holders)
        logger.info("Deleted role %s", slug)
        return True

    # ---- Permissions ----
    @staticmethod
    def create_permission(
        db: Session,
        name: str,
        slug: str,
        group: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Permission:
        """Create a permission. ``*`` may be created once, like any slug.

        Raises:
            DuplicateSlugError: If a permission with this slug exists.
        """
        if RoleService.find_permission_by_slug(db, slug):
            raise DuplicateSlugError("permission", slug)
        permission = Permission(name=name, slug=slug, group=group, description=description)
        try:
            with transaction(db):
                db.add(permission)
        except IntegrityError as e:
            raise DuplicateSlugError("permission", slug) from e
        db.refresh(permission)
        logger.info("Created permission %s", slug)
        return permission

    @staticmethod
    def find_permission_by_slug(db: Session, slug: str) -> Optional[Permission]:
        return db.query(Permission).filter(Permission.slug == slug).first()

    @staticmethod
    def find_permission_by_slug_or_fail(db: Session, slug: str) -> Permission:
        permission = RoleService.find_permission_by_slug(db, slug)
        if not permission:
            raise NotFoundError(f"Permission '{slug}' not found")
        return permission

    @staticmethod
    def list_permissions(db: Session, group: Optional[str] = None) -> List[Permission]:
        query = db.query(Permission)
        if group:
            query = query.filter(Permission.group == group)
        return query.order_by(Permission.group.asc(), Permission.slug.asc()).all()

    @staticmethod
    def permissions_grouped(db: Session) -> Dict[str, List[Permission]]:
        grouped: Dict[str, List[Permission]] = {}
        for permission in RoleService.list_permissions(db):
            grouped.setdefault(permission.group or "", []).append(permission)
        return grouped

    @staticmethod
    def update_permission(db: Session, permission: Union[Permission, str], **fields) -> Permission:
        permission = RoleService._permission(db, permission)
        with transaction(db):
            for field, value in fields.items():
                if field in PERMISSION_FIELDS and value is not None:
                    setattr(permission, field, value)
        db.refresh(permission)
        return permission

    @staticmethod
    def delete_permission(db: Session, permission: Union[Permission, str]) -> bool:
        permission = RoleService._permission(db, permission)
        slug = permission.slug
        role_ids = [link.role_id for link in permission.role_links]
        affected = set(RoleService._role_holder_ids(db, role_ids))
        affected.update(link.user_id for link in permission.user_links)
        with transaction(db):
            db.delete(permission)
        forget_cached_decisions(affected)
        logger.info("Deleted permission %s", slug)
        return True

    # ---- Role <-> Permission ----
    @staticmethod
    def give_permission_to_role(db: Session, role: Union[Role, str], *permissions: str) -> List[int]:
        role = RoleService._role(db, role)
        with transaction(db):
            added = _attach(db, RolePermission, "role_id", role.id, "permission_id",
                            RoleService._permission_ids(db, permissions))
        forget_cached_decisions(RoleService._role_holder_ids(db, [role.id]))
        return added

    @staticmethod
    def revoke_permission_from_role(db: Session, role: Union[Role, str], *permissions: str) -> List[int]:
        role = RoleService._role(db, role)
        with transaction(db):
            removed = _detach(db, RolePermission, "role_id", role.id, "permission_id",
                              RoleService._permission_ids(db, permissions))
        forget_cached_decisions(RoleService._role_holder_ids(db, [role.id]))
        return removed

    @staticmethod
    def sync_role_permissions(db: Session, role: Union[Role, str], permissions: Sequence[str]) -> Dict[str, List[int]]:
        role = RoleService._role(db, role)
        with transaction(db):
            changes = _sync(db, RolePermission, "role_id", role.id, "permission_id",
                            RoleService._permission_ids(db, permissions))
        forget_cached_decisions(RoleService._role_holder_ids(db, [role.id]))
        return changes

    # ---- User <-> Role ----
    @staticmethod
    def assign_role(db: Session, user: User, *roles: str) -> List[int]:
        with transaction(db):
            added = _attach(db, UserRole, "user_id", user.id, "role_id", RoleService._role_ids(db, roles))
        forget_cached_decisions([user.id])
        return added

    @staticmethod
    def remove_role(db: Session, user: User, *roles: str) -> List[int]:
        with transaction(db):
            removed = _detach(db, UserRole, "user_id", user.id, "role_id", RoleService._role_ids(db, roles))
        forget_cached_decisions([user.id])
        return removed

    @staticmethod
    def sync_roles(db: Session, user: User, roles: Sequence[str]) -> Dict[str, List[int]]:
        with transaction(db):
            changes = _sync(db, UserRole, "user_id", user.id, "role_id", RoleService._role_ids(db, roles))
        forget_cached_decisions([user.id])
        return changes

    @staticmethod
    def assign_default_roles(db: Session, user: User) -> List[int]:
        slugs = [role.slug for role in RoleService.default_roles(db)]
        if not slugs:
            return []
        return RoleService.assign_role(db, user, *slugs)

    # ---- User <-> Permission ----
    @staticmethod
    def give_permission(db: Session, user: User, *permissions: str) -> List[int]:
        with transaction(db):
            added = _attach(db, UserPermission, "user_id", user.id, "permission_id",
                            RoleService._permission_ids(db, permissions))
        forget_cached_decisions([user.id])
        return added

    @staticmethod
    def revoke_permission(db: Session, user: User, *permissions: str) -> List[int]:
        with transaction(db):
            removed = _detach(db, UserPermission, "user_id", user.id, "permission_id",
                              RoleService._permission_ids(db, permissions))
        forget_cached_decisions([user.id])
        return removed

    @staticmethod
    def sync_permissions(db: Session, user: User, permissions: Sequence[str]) -> Dict[str, List[int]]:
        with transaction(db):
            changes = _sync(db, UserPermission, "user_id", user.id, "permission_id",
                            RoleService._permission_ids(db, permissions))
        forget_cached_decisions([user.id])
        return changes

    # ---- Scopes ----
    @staticmethod
    def users_with_role(db: Session, *roles: str) -> List[User]:
        return (
            db.query(User)
            .filter(User.role_links.any(UserRole.role.has(Role.slug.in_(roles))))
            .order_by(User.id.asc())
            .all()
        )

    @staticmethod
    def users_with_permission(db: Session, *permissions: str) -> List[User]:
        """Users granted one of the slugs directly or through a role."""
        direct = User.permission_links.any(
            UserPermission.permission.has(Permission.slug.in_(permissions))
        )
        via_role = User.role_links.any(
            UserRole.role.has(Role.permission_links.any(
                RolePermission.permission.has(Permission.slug.in_(permissions))
            ))
        )
        return db.query(User).filter(or_(direct, via_role)).order_by(User.id.asc()).all()

    # ---- Helpers ----
    @staticmethod
    def _role(db: Session, role: Union[Role, str]) -> Role:
        if isinstance(role, Role):
            return role
        return RoleService.find_role_by_slug_or_fail(db, role)

    @staticmethod
    def _permission(db: Session, permission: Union[Permission, str]) -> Permission:
        if isinstance(permission, Permission):
            return permission
        return RoleService.find_permission_by_slug_or_fail(db, permission)

    @staticmethod
    def _role_ids(db: Session, slugs: Iterable[str]) -> List[int]:
        slugs = list(dict.fromkeys(slugs))
        if not slugs:
            return []
        found = dict(db.query(Role.slug, Role.id).filter(Role.slug.in_(slugs)).all())
        missing = [s for s in slugs if s not in found]
        if missing:
            logger.warning("Ignoring unknown role slug(s): %s", ", ".join(missing))
        return [found[s] for s in slugs if s in found]

    @staticmethod
    def _permission_ids(db: Session, slugs: Iterable[str]) -> List[int]:
        slugs = list(dict.fromkeys(slugs))
        if not slugs:
            return []
        found = dict(db.query(Permission.slug, Permission.id).filter(Permission.slug.in_(slugs)).all())
        missing = [s for s in slugs if s not in found]
        if missing:
            logger.warning("Ignoring unknown permission slug(s): %s", ", ".join(missing))
        return [found[s] for s in slugs if s in found]

    @staticmethod
    def _role_holder_ids(db: Session, role_ids: Iterable[int]) -> List[int]:
        role_ids = list(role_ids)
        if not role_ids:
            return []
        rows = db.query(UserRole.user_id).filter(UserRole.role_id.in_(role_ids)).distinct().all()
        return [row[0] for row in rows]


role_service = RoleService()
