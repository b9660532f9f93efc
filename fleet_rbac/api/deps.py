"""Shared route dependencies."""

from fastapi import Depends, Request

from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.security import require_admin
from fleet_rbac.services.audit_service import AuditContext


def admin_audit_context(
    request: Request,
    principal: Principal = Depends(require_admin),
) -> AuditContext:
    """Gate the route on the admin permission and capture who is acting."""
    return AuditContext.from_request(request, principal.user_id)
