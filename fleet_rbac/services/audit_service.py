"""Audit service: append-only audit trail for administrative mutations."""

import json
from dataclasses import dataclass
from typing import Optional, Any, Dict

from fastapi import Request
from sqlalchemy.orm import Session

from fleet_rbac.core.config import settings
from fleet_rbac.core.exceptions import ValidationError
from fleet_rbac.models.audit_log import AuditLog


@dataclass(frozen=True)
class AuditContext:
    """Who performed a mutation and from where. Empty means system-initiated."""

    actor_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def from_request(cls, request: Request, actor_id: Optional[int]) -> "AuditContext":
        ip = request.client.host if request.client else None
        ua = request.headers.get("user-agent", "")[:500] or None
        return cls(actor_id=actor_id, ip_address=ip, user_agent=ua)


SYSTEM = AuditContext()


class AuditService:
    """Records immutable audit log entries."""

    @staticmethod
    def append(
        db: Session,
        action: str,
        details: Optional[Any] = None,
        context: Optional[AuditContext] = None,
    ) -> AuditLog:
        """Stage a single audit log record in the caller's transaction.

        The entry is flushed, not committed: it becomes durable together with
        the mutation it describes, or not at all.
        """
        if not action or not action.strip():
            raise ValidationError.for_field("action", "Audit action must not be empty")
        context = context or SYSTEM

        entry = AuditLog(
            user_id=context.actor_id,
            action=action.strip(),
            details=json.dumps(details, default=str) if details is not None else None,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def query(
        db: Session,
        user_id: Optional[int] = None,
        action: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Query audit logs, newest first, with offset pagination."""
        page_size = page_size or settings.AUDIT_PAGE_SIZE
        if page < 1:
            raise ValidationError.for_field("page", "page must be >= 1")
        if page_size < 1 or page_size > settings.AUDIT_MAX_PAGE_SIZE:
            raise ValidationError.for_field(
                "pageSize", f"pageSize must be between 1 and {settings.AUDIT_MAX_PAGE_SIZE}"
            )

        query = db.query(AuditLog)
        if user_id is not None:
            query = query.filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action.icontains(action, autoescape=True))

        total = query.count()
        items = (
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
