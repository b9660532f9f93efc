"""Models package: import all models so metadata.create_all can discover them."""

from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import Role, RolePermission
from fleet_rbac.models.user import User, UserStatus
from fleet_rbac.models.audit_log import AuditLog

__all__ = [
    "Permission", "Role", "RolePermission",
    "User", "UserStatus", "AuditLog",
]
