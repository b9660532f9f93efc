"""Principal resolution: user id to active permission-key set."""

from sqlalchemy.orm import Session

from fleet_rbac.core.authorization import Principal
from fleet_rbac.core.exceptions import AuthenticationError
from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import RolePermission
from fleet_rbac.models.user import User, UserStatus


class PrincipalService:
    """Resolves a principal from the store on every request; nothing is cached."""

    @staticmethod
    def permission_keys_for_role(db: Session, role_id: int) -> list[str]:
        rows = (
            db.query(Permission.key)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .filter(RolePermission.role_id == role_id)
            .order_by(Permission.key.asc())
            .all()
        )
        return [key for (key,) in rows]

    @staticmethod
    def resolve(db: Session, user_id: int) -> Principal:
        """Follow User -> Role -> RolePermission -> Permission.

        Inactive users and users without a role resolve to an empty set.

        Raises:
            AuthenticationError: If the user no longer exists.
        """
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            raise AuthenticationError("User not found")

        keys: list[str] = []
        if user.status == UserStatus.active and user.role_id is not None:
            keys = PrincipalService.permission_keys_for_role(db, user.role_id)

        return Principal.build(
            user.id,
            keys,
            status=user.status.value,
            role_id=user.role_id,
            role_name=user.role.name if user.role else None,
        )


principal_service = PrincipalService()
