"""Permissions API router."""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.schemas.schemas import (
    PermissionCreate, PermissionUpdate, PermissionOut, MessageResponse,
)
from rolekit.services.authorization import Authorizer
from rolekit.services.role_service import role_service
from rolekit.services.audit_service import audit_service
from rolekit.services.gate import gate_registry
from rolekit.core.security import require_manage_roles

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/", response_model=List[PermissionOut])
async def list_permissions(
    group: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    return role_service.list_permissions(db, group)


@router.get("/grouped", response_model=Dict[str, List[PermissionOut]])
async def permissions_grouped(
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Permissions keyed by group; ungrouped ones under ``""``."""
    return role_service.permissions_grouped(db)


@router.post("/", response_model=PermissionOut, status_code=201)
async def create_permission(
    body: PermissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Create a permission and register its gate."""
    permission = role_service.create_permission(
        db, body.name, body.slug, body.group, body.description,
    )
    gate_registry.refresh(db)
    audit_service.record(
        db, request, authorizer.user,
        action="permission.created", resource_type="permission",
        resource_id=permission.slug, after=body.model_dump(),
    )
    db.refresh(permission)
    return permission


@router.put("/{slug}", response_model=PermissionOut)
async def update_permission(
    slug: str,
    body: PermissionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    changes = body.model_dump(exclude_none=True)
    permission = role_service.update_permission(db, slug, **changes)
    audit_service.record(
        db, request, authorizer.user,
        action="permission.updated", resource_type="permission",
        resource_id=slug, after=changes,
    )
    db.refresh(permission)
    return permission


@router.delete("/{slug}", response_model=MessageResponse)
async def delete_permission(
    slug: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_manage_roles),
):
    """Delete a permission, its grants and its gate."""
    role_service.delete_permission(db, slug)
    gate_registry.refresh(db)
    audit_service.record(
        db, request, authorizer.user,
        action="permission.deleted", resource_type="permission", resource_id=slug,
    )
    return MessageResponse(message=f"Permission '{slug}' deleted")
