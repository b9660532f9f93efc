"""Auth service: credential check and access-token issuance."""

from typing import Dict, Any

from sqlalchemy.orm import Session

from fleet_rbac.core.exceptions import AuthenticationError
from fleet_rbac.core.security import verify_password, create_access_token
from fleet_rbac.services.user_service import user_service


class AuthService:
    """Handles authentication."""

    @staticmethod
    def authenticate(db: Session, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return a JWT access token.

        The token only carries the user id; permissions are resolved from the
        store on every request.

        Raises:
            AuthenticationError: If credentials are invalid or the account is inactive.
        """
        user = user_service.get_by_email(db, email)
        if not user or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        access_token = create_access_token({"sub": str(user.id)})
        return {"access_token": access_token, "token_type": "bearer"}


auth_service = AuthService()
