"""Permission catalog API router."""

from typing import List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from fleet_rbac.api.deps import admin_audit_context
from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.security import require_admin
from fleet_rbac.db.session import get_db
from fleet_rbac.schemas.schemas import PermissionCreate, PermissionUpdate, PermissionOut
from fleet_rbac.services.audit_service import AuditContext
from fleet_rbac.services.permission_service import permission_service

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=List[PermissionOut])
async def list_permissions(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """List permissions ordered by key."""
    return permission_service.list_permissions(db)


@router.post("", response_model=PermissionOut, status_code=status.HTTP_201_CREATED)
async def create_permission(
    body: PermissionCreate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Create a permission key."""
    return permission_service.create(db, body.key, body.description, audit=audit)


@router.put("/{permission_id}", response_model=PermissionOut)
async def update_permission(
    permission_id: int,
    body: PermissionUpdate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Update key and/or description; omitted fields are left as they are."""
    return permission_service.update(
        db, permission_id, audit=audit, **body.model_dump(exclude_unset=True),
    )


@router.delete("/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Delete a permission (409 while a role still uses it)."""
    permission_service.delete(db, permission_id, audit=audit)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
