"""User directory service: administrative user management."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from fleet_rbac.core.exceptions import ConflictError, NotFoundError, ValidationError
from fleet_rbac.core.security import hash_password, generate_temp_password
from fleet_rbac.core.validators import normalize_email, validate_name, validate_password
from fleet_rbac.db.session import atomic
from fleet_rbac.models.role import Role
from fleet_rbac.models.user import User, UserStatus
from fleet_rbac.services.audit_service import audit_service, AuditContext

logger = logging.getLogger("fleet_rbac.users")


def _coerce_status(status: Any) -> UserStatus:
    try:
        return UserStatus(status)
    except ValueError:
        raise ValidationError.for_field("status", "status must be 'active' or 'inactive'")


class UserService:
    """Owns user records and their role binding."""

    @staticmethod
    def list_users(
        db: Session,
        search: Optional[str] = None,
        role_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[User]:
        """List users, newest id first, optionally filtered."""
        query = db.query(User)
        if status:
            query = query.filter(User.status == _coerce_status(status))
        if role_id is not None:
            query = query.filter(User.role_id == role_id)
        if search:
            query = query.filter(or_(
                User.name.icontains(search, autoescape=True),
                User.email.icontains(search, autoescape=True),
            ))
        return query.order_by(User.id.desc()).all()

    @staticmethod
    def get(db: Session, user_id: int, for_update: bool = False) -> User:
        query = db.query(User).filter(User.id == user_id)
        if for_update:
            query = query.with_for_update()
        user = query.first()
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def _ensure_email_available(db: Session, email: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(User.id).filter(func.lower(User.email) == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError(f"Email {email} is already in use")

    @staticmethod
    def _ensure_role_exists(db: Session, role_id: int) -> None:
        if not db.query(Role.id).filter(Role.id == role_id).first():
            raise ValidationError.for_field("roleId", f"Role {role_id} does not exist")

    @staticmethod
    def create(
        db: Session,
        name: str,
        email: str,
        role_id: int,
        status: Any = UserStatus.active,
        password: Optional[str] = None,
        audit: Optional[AuditContext] = None,
    ) -> Tuple[User, Optional[str]]:
        """Create a user.

        Returns the user and, when no password was supplied, the generated
        temporary password. That value is returned only here; it is stored
        hashed and never written to logs or the audit trail.
        """
        name = validate_name(name)
        email = normalize_email(email)
        status = _coerce_status(status)
        if password is not None:
            validate_password(password)

        temp_password = None if password is not None else generate_temp_password()

        with atomic(db):
            UserService._ensure_role_exists(db, role_id)
            UserService._ensure_email_available(db, email)
            user = User(
                name=name,
                email=email,
                hashed_password=hash_password(password if password is not None else temp_password),
                status=status,
                role_id=role_id,
            )
            db.add(user)
            db.flush()
            audit_service.append(
                db, "users.create",
                {"userId": user.id, "email": user.email, "roleId": role_id, "status": status.value},
                audit,
            )
        db.refresh(user)
        logger.info("User %s created", user.id)
        return user, temp_password

    @staticmethod
    def update(
        db: Session,
        user_id: int,
        name: str,
        email: str,
        role_id: int,
        status: Any,
        audit: Optional[AuditContext] = None,
    ) -> User:
        """Replace name, email, role and status of a user."""
        name = validate_name(name)
        email = normalize_email(email)
        status = _coerce_status(status)

        with atomic(db):
            user = UserService.get(db, user_id, for_update=True)
            UserService._ensure_role_exists(db, role_id)
            if email != user.email:
                UserService._ensure_email_available(db, email, exclude_id=user.id)

            new_values: Dict[str, Any] = {
                "name": name, "email": email, "role_id": role_id, "status": status,
            }
            changes = {
                field: (value.value if isinstance(value, UserStatus) else value)
                for field, value in new_values.items()
                if getattr(user, field) != value
            }
            for field, value in new_values.items():
                setattr(user, field, value)
            db.flush()
            audit_service.append(db, "users.update", {"userId": user.id, "changes": changes}, audit)
        db.refresh(user)
        logger.info("User %s updated", user.id)
        return user

    @staticmethod
    def set_status(
        db: Session,
        user_id: int,
        status: Any,
        audit: Optional[AuditContext] = None,
    ) -> User:
        """Activate or deactivate a user. Deactivation revokes all access."""
        status = _coerce_status(status)
        with atomic(db):
            user = UserService.get(db, user_id, for_update=True)
            user.status = status
            db.flush()
            audit_service.append(
                db, "users.status.update", {"userId": user.id, "status": status.value}, audit,
            )
        db.refresh(user)
        logger.info("User %s status set to %s", user.id, status.value)
        return user


user_service = UserService()
