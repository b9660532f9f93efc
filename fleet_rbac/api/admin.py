"""Admin user-management API router."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fleet_rbac.api.deps import admin_audit_context
from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.security import require_admin
from fleet_rbac.db.session import get_db
from fleet_rbac.models.user import UserStatus
from fleet_rbac.schemas.schemas import (
    UserOut, UserCreate, UserUpdate, UserStatusUpdate, UserCreatedResponse,
)
from fleet_rbac.services.audit_service import AuditContext
from fleet_rbac.services.user_service import user_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users", response_model=List[UserOut])
async def admin_list_users(
    search: Optional[str] = Query(None),
    role_id: Optional[int] = Query(None, alias="roleId"),
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
):
    """List users, newest first, filtered by name/email search, role and status."""
    return user_service.list_users(db, search=search, role_id=role_id, status=user_status)


@router.post("/users", response_model=UserCreatedResponse, status_code=status.HTTP_201_CREATED)
async def admin_create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Create a user. ``tempPassword`` is returned once when no password was given."""
    user, temp_password = user_service.create(
        db, body.name, body.email, body.role_id,
        status=body.status, password=body.password, audit=audit,
    )
    return UserCreatedResponse(user=UserOut.model_validate(user), temp_password=temp_password)


@router.put("/users/{user_id}", response_model=UserOut)
async def admin_update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Replace a user's name, email, role and status."""
    return user_service.update(
        db, user_id, body.name, body.email, body.role_id, body.status, audit=audit,
    )


@router.patch("/users/{user_id}/status", response_model=UserOut)
async def admin_set_user_status(
    user_id: int,
    body: UserStatusUpdate,
    db: Session = Depends(get_db),
    audit: AuditContext = Depends(admin_audit_context),
):
    """Activate or deactivate a user."""
    return user_service.set_status(db, user_id, body.status, audit=audit)
