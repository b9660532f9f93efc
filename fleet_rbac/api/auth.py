"""Auth API router: login and current principal."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.security import get_current_principal
from fleet_rbac.db.session import get_db
from fleet_rbac.schemas.schemas import LoginRequest, TokenResponse, PrincipalOut
from fleet_rbac.services.auth_service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a JWT access token."""
    return auth_service.authenticate(db, body.email, body.password)


@router.get("/me", response_model=PrincipalOut)
async def get_me(principal: Principal = Depends(get_current_principal)):
    """Return the caller's resolved principal."""
    return PrincipalOut(
        user_id=principal.user_id,
        status=principal.status,
        role_id=principal.role_id,
        role_name=principal.role_name,
        permissions=sorted(principal.permissions),
    )
