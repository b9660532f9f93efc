"""Audit log API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.config import settings
from fleet_rbac.core.security import require_admin
from fleet_rbac.db.session import get_db
from fleet_rbac.schemas.schemas import AuditLogOut, AuditLogPage
from fleet_rbac.services.audit_service import audit_service

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogPage)
async def get_audit_logs(
    user_id: Optional[int] = Query(None, alias="userId"),
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.AUDIT_PAGE_SIZE, ge=1, le=settings.AUDIT_MAX_PAGE_SIZE, alias="pageSize"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """Query audit logs, newest first."""
    result = audit_service.query(db, user_id=user_id, action=action, page=page, page_size=page_size)
    return AuditLogPage(
        items=[AuditLogOut.model_validate(entry) for entry in result["items"]],
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
    )
