"""Roles API router — CRUD and role permission grants."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.schemas.schemas import (
    RoleCreate, RoleUpdate, RoleOut, RoleDetailOut, SlugList, SyncResult,
    UserOut, MessageResponse,
)
from rolekit.services.authorization import Authorizer
from rolekit.services.role_service import role_service
from rolekit.services.audit_service import audit_service
from rolekit.core.security import require_manage_roles

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/", response_model=List[RoleOut])
async def list_roles(
    direction: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """List roles ordered by level."""
    return role_service.list_roles(db, direction)


@router.post("/", response_model=RoleDetailOut, status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Create a role, optionally granting it permissions."""
    role = role_service.create_role(
        db, body.name, body.slug, body.level, body.is_default, body.description,
    )
    if body.permissions:
        role_service.sync_role_permissions(db, role, body.permissions)
    audit_service.record(
        db, request, authorizer.user,
        action="role.created", resource_type="role", resource_id=role.slug,
        after=body.model_dump(),
    )
    db.refresh(role)
    return role


@router.get("/{slug}", response_model=RoleDetailOut)
async def get_role(
    slug: str,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    return role_service.find_role_by_slug_or_fail(db, slug)


@router.put("/{slug}", response_model=RoleOut)
async def update_role(
    slug: str,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Update role metadata; the slug cannot change."""
    changes = body.model_dump(exclude_none=True)
    role = role_service.update_role(db, slug, **changes)
    audit_service.record(
        db, request, authorizer.user,
        action="role.updated", resource_type="role", resource_id=slug, after=changes,
    )
    db.refresh(role)
    return role


@router.delete("/{slug}", response_model=MessageResponse)
async def delete_role(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    role_service.delete_role(db, slug)
    audit_service.record(
        db, request, authorizer.user,
        action="role.deleted", resource_type="role", resource_id=slug,
    )
    return MessageResponse(message=f"Role '{slug}' deleted")


@router.get("/{slug}/users", response_model=List[UserOut])
async def role_users(
    slug: str,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Users holding this role."""
    role = role_service.find_role_by_slug_or_fail(db, slug)
    return role_service.users_with_role(db, role.slug)


@router.put("/{slug}/permissions", response_model=SyncResult)
async def sync_role_permissions(
    slug: str,
    body: SlugList,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Replace the role's permission set with exactly ``body.slugs``."""
    changes = role_service.sync_role_permissions(db, slug, body.slugs)
    audit_service.record(
        db, request, authorizer.user,
        action="role.permissions_synced", resource_type="role", resource_id=slug,
        after=body.slugs,
    )
    return changes


@router.post("/{slug}/permissions/{permission}", response_model=MessageResponse)
async def give_permission_to_role(
    slug: str,
    permission: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    role_service.find_permission_by_slug_or_fail(db, permission)
    role_service.give_permission_to_role(db, slug, permission)
    audit_service.record(
        db, request, authorizer.user,
        action="role.permission_given", resource_type="role", resource_id=slug,
        after=permission,
    )
    return MessageResponse(message=f"Permission '{permission}' given to role '{slug}'")


@router.delete("/{slug}/permissions/{permission}", response_model=MessageResponse)
async def revoke_permission_from_role(
    slug: str,
    permission: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    role_service.find_permission_by_slug_or_fail(db, permission)
    role_service.revoke_permission_from_role(db, slug, permission)
    audit_service.record(
        db, request, authorizer.user,
        action="role.permission_revoked", resource_type="role", resource_id=slug,
        before=permission,
    )
    return MessageResponse(message=f"Permission '{permission}' revoked from role '{slug}'")
