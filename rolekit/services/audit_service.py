"""Audit service — append-only trail of role, permission, grant and setting changes."""

import json
from typing import Any, Dict, Optional

from fastapi import Request
from sqlalchemy.orm import Session

from rolekit.models import AuditLog, User


def _dump(value: Any) -> Optional[str]:
    return json.dumps(value, default=str) if value is not None else None


class AuditService:
    """Who changed which RBAC resource, from where."""

    @staticmethod
    def record(
        db: Session,
        request: Optional[Request],
        actor: Optional[User],
        action: str,
        resource_type: str,
        resource_id: Optional[Any] = None,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
    ) -> AuditLog:
        """Append one entry and commit it straight away.

        ``action`` reads ``<resource>.<verb>``, e.g. ``role.permissions_synced``.
        ``request`` is None outside HTTP (CLI, seeders).
        """
        entry = AuditLog(
            actor_id=actor.id if actor else None,
            actor_email=actor.email if actor else None,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id is not None else None,
            old_value_json=_dump(before),
            new_value_json=_dump(after),
        )
        if request is not None:
            entry.ip_address = request.client.host if request.client else None
            entry.user_agent = request.headers.get("user-agent", "")[:500]
        db.add(entry)
        db.commit()
        return entry

    @staticmethod
    def history(
        db: Session,
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
        actor_id: Optional[int] = None,
        action: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Newest-first entries, optionally narrowed to one resource or actor."""
        query = db.query(AuditLog)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if resource_id is not None:
            query = query.filter(AuditLog.resource_id == str(resource_id))
        if actor_id:
            query = query.filter(AuditLog.actor_id == actor_id)
        if action:
            query = query.filter(AuditLog.action == action)

        total = query.count()
        logs = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"logs": logs, "total": total, "page": page}


audit_service = AuditService()
