"""Roles API router."""

from typing import List
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from fleet_rbac.api.deps import admin_audit_context
from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.security import require_admin
from fleet_rbac.db.session import get_db
from fleet_rbac.schemas.schemas import RoleCreate, RoleUpdate, RoleOut, RolePermissionsSet
from fleet_rbac.services.audit_service import AuditContext
from fleet_rbac.services.role_service import role_service

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=List[RoleOut])
async def list_roles(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """List roles with their permission keys."""
    return [RoleOut.from_role(r) for r in role_service.list_roles(db)]


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: RoleCreate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Create a role with no permissions."""
    role = role_service.create(db, body.name, body.description, audit=audit)
    return RoleOut.from_role(role)


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Update a role's name and description."""
    role = role_service.update(db, role_id, body.name, body.description, audit=audit)
    return RoleOut.from_role(role)


@router.put("/{role_id}/permissions", response_model=RoleOut)
async def set_role_permissions(
    role_id: int,
    body: RolePermissionsSet,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Replace the role's permission set; unknown keys are created."""
    role = role_service.set_permissions(db, role_id, body.permissions, audit=audit)
    return RoleOut.from_role(role)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Delete a role (409 while users are assigned to it)."""
    role_service.delete(db, role_id, audit=audit)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
