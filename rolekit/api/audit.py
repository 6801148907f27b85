"""Audit API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rolekit.db.session import get_db
from rolekit.schemas.schemas import AuditLogOut
from rolekit.services.authorization import Authorizer
from rolekit.services.audit_service import audit_service
from rolekit.core.security import RequireAbility

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/")
async def get_audit_logs(
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    authorizer: Authorizer = Depends(RequireAbility("manage-roles")),
):
    """Query the RBAC audit trail; guarded by the ``manage-roles`` gate."""
    result = audit_service.history(db, resource_type, resource_id, actor_id, action, page, page_size)
    return {
        "logs": [AuditLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
    }
