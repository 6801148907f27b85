"""Users API router — a user's roles, direct permissions and checks."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.models import User
from rolekit.schemas.schemas import (
    AbilityCheckOut, MessageResponse, PermissionOut, RoleOut, SlugList, SyncResult,
    UserAccessOut, UserOut,
)
from rolekit.services.authorization import Authorizer
from rolekit.services.auth_service import auth_service
from rolekit.services.role_service import role_service
from rolekit.services.audit_service import audit_service
from rolekit.core.security import require_manage_roles

router = APIRouter(prefix="/users", tags=["users"])


def user_access(db: Session, user: User) -> UserAccessOut:
    """Profile plus role slugs, effective permission slugs and super-admin flag."""
    authorizer = Authorizer(db, user)
    return UserAccessOut(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        is_active=user.is_active,
        created_at=user.created_at,
        roles=authorizer.get_role_slugs(),
        permissions=authorizer.get_permission_slugs(),
        is_super_admin=authorizer.is_super_admin(),
    )


@router.get("/", response_model=List[UserOut])
async def list_users(
    role: Optional[str] = Query(None, description="Only users holding this role"),
    permission: Optional[str] = Query(None, description="Only users granted this permission"),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    if role:
        return role_service.users_with_role(db, role)
    if permission:
        return role_service.users_with_permission(db, permission)
    return db.query(User).order_by(User.id.asc()).all()


@router.get("/{user_id}", response_model=UserAccessOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    return user_access(db, auth_service.get_user(db, user_id))


@router.get("/{user_id}/check", response_model=AbilityCheckOut)
async def check_ability(
    user_id: int,
    ability: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Would this user pass a permission check for ``ability``?"""
    subject = Authorizer(db, auth_service.get_user(db, user_id))
    return AbilityCheckOut(ability=ability, allowed=subject.has_permission(ability))


# ---- Roles ----
@router.get("/{user_id}/roles", response_model=List[RoleOut])
async def user_roles(
    user_id: int,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    return Authorizer(db, auth_service.get_user(db, user_id)).get_roles()


@router.put("/{user_id}/roles", response_model=SyncResult)
async def sync_user_roles(
    user_id: int,
    body: SlugList,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Replace the user's roles with exactly ``body.slugs``."""
    user = auth_service.get_user(db, user_id)
    changes = role_service.sync_roles(db, user, body.slugs)
    audit_service.record(
        db, request, authorizer.user,
        action="user.roles_synced", resource_type="user", resource_id=user_id,
        after=body.slugs,
    )
    return changes


@router.post("/{user_id}/roles/{slug}", response_model=MessageResponse)
async def assign_role(
    user_id: int,
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    user = auth_service.get_user(db, user_id)
    role_service.find_role_by_slug_or_fail(db, slug)
    role_service.assign_role(db, user, slug)
    audit_service.record(
        db, request, authorizer.user,
        action="user.role_assigned", resource_type="user", resource_id=user_id, after=slug,
    )
    return MessageResponse(message=f"Role '{slug}' assigned")


@router.delete("/{user_id}/roles/{slug}", response_model=MessageResponse)
async def remove_role(
    user_id: int,
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    user = auth_service.get_user(db, user_id)
    role_service.find_role_by_slug_or_fail(db, slug)
    role_service.remove_role(db, user, slug)
    audit_service.record(
        db, request, authorizer.user,
        action="user.role_removed", resource_type="user", resource_id=user_id, before=slug,
    )
    return MessageResponse(message=f"Role '{slug}' removed")


# ---- Direct permissions ----
@router.get("/{user_id}/permissions", response_model=List[PermissionOut])
async def user_permissions(
    user_id: int,
    direct: bool = Query(False, description="Only permissions granted directly"),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    subject = Authorizer(db, auth_service.get_user(db, user_id))
    return subject.get_direct_permissions() if direct else subject.get_all_permissions()


@router.put("/{user_id}/permissions", response_model=SyncResult)
async def sync_user_permissions(
    user_id: int,
    body: SlugList,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Replace the user's direct permissions with exactly ``body.slugs``."""
    user = auth_service.get_user(db, user_id)
    changes = role_service.sync_permissions(db, user, body.slugs)
    audit_service.record(
        db, request, authorizer.user,
        action="user.permissions_synced", resource_type="user", resource_id=user_id,
        after=body.slugs,
    )
    return changes


@router.post("/{user_id}/permissions/{slug}", response_model=MessageResponse)
async def give_permission(
    user_id: int,
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    user = auth_service.get_user(db, user_id)
    role_service.find_permission_by_slug_or_fail(db, slug)
    role_service.give_permission(db, user, slug)
    audit_service.record(
        db, request, authorizer.user,
        action="user.permission_given", resource_type="user", resource_id=user_id, after=slug,
    )
    return MessageResponse(message=f"Permission '{slug}' given")


@router.delete("/{user_id}/permissions/{slug}", response_model=MessageResponse)
async def revoke_permission(
    user_id: int,
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    user = auth_service.get_user(db, user_id)
    role_service.find_permission_by_slug_or_fail(db, slug)
    role_service.revoke_permission(db, user, slug)
    audit_service.record(
        db, request, authorizer.user,
        action="user.permission_revoked", resource_type="user", resource_id=user_id, before=slug,
    )
    return MessageResponse(message=f"Permission '{slug}' revoked")
