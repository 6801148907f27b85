"""Settings API router."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.schemas.schemas import MessageResponse, SettingOut, SettingUpdate
from rolekit.services.authorization import Authorizer
from rolekit.services.settings_service import settings_service
from rolekit.services.audit_service import audit_service
from rolekit.core.exceptions import NotFoundError
from rolekit.core.security import require_edit_settings, require_view_settings

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=Dict[str, Any])
async def all_settings(
    group: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_view_settings),
):
    """Every setting keyed ``group.key``, or one group keyed by ``key``."""
    if group:
        return settings_service.get_group(db, group)
    return settings_service.all(db)


@router.get("/public", response_model=Dict[str, Any])
async def public_settings(db: Session = Depends(get_db)):
    """Settings flagged public; no authentication required."""
    return settings_service.all(db, public_only=True)


@router.get("/{group}/{key}", response_model=SettingOut)
async def get_setting(
    group: str,
    key: str,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_view_settings),
):
    if not settings_service.has(db, key, group):
        raise NotFoundError(f"Setting '{group}.{key}' not found")
    return SettingOut(group=group, key=key, value=settings_service.get(db, key, group=group))


@router.put("/{group}/{key}", response_model=SettingOut)
async def put_setting(
    group: str,
    key: str,
    body: SettingUpdate,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_edit_settings),
):
    old = settings_service.get(db, key, group=group)
    row = settings_service.set(
        db, key, body.value, group=group, is_public=body.is_public, description=body.description,
    )
    audit_service.record(
        db, request, authorizer.user,
        action="setting.updated", resource_type="setting", resource_id=f"{group}.{key}",
        before=old, after=body.value,
    )
    return SettingOut(group=group, key=key, value=row.get_casted_value())


@router.delete("/{group}/{key}", response_model=MessageResponse)
async def delete_setting(
    group: str,
    key: str,
    request: Request,
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(require_edit_settings),
):
    if not settings_service.remove(db, key, group):
        raise NotFoundError(f"Setting '{group}.{key}' not found")
    audit_service.record(
        db, request, authorizer.user,
        action="setting.deleted", resource_type="setting", resource_id=f"{group}.{key}",
    )
    return MessageResponse(message=f"Setting '{group}.{key}' deleted")
