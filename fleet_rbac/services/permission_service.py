"""Permission catalog service: create, rename, delete permission keys."""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from fleet_rbac.core.exceptions import ConflictError, NotFoundError
from fleet_rbac.core.validators import validate_permission_key
from fleet_rbac.db.session import atomic
from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import RolePermission
from fleet_rbac.services.audit_service import audit_service, AuditContext

logger = logging.getLogger("fleet_rbac.permissions")

_UPDATABLE = {"key", "description"}


class PermissionService:
    """Owns the permission catalog."""

    @staticmethod
    def list_permissions(db: Session) -> List[Permission]:
        return db.query(Permission).order_by(Permission.key.asc()).all()

    @staticmethod
    def get(db: Session, permission_id: int, for_update: bool = False) -> Permission:
        query = db.query(Permission).filter(Permission.id == permission_id)
        if for_update:
            query = query.with_for_update()
        permission = query.first()
        if not permission:
            raise NotFoundError(f"Permission {permission_id} not found")
        return permission

    @staticmethod
    def _ensure_key_available(db: Session, key: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Permission.id).filter(Permission.key == key)
        if exclude_id is not None:
            query = query.filter(Permission.id != exclude_id)
        if query.first():
            raise ConflictError(f"Permission '{key}' already exists")

    @staticmethod
    def create(
        db: Session,
        key: str,
        description: Optional[str] = None,
        audit: Optional[AuditContext] = None,
    ) -> Permission:
        """Create a permission.

        Raises:
            ValidationError: If the key is not ``module.action``.
            ConflictError: If the key already exists.
        """
        validate_permission_key(key)
        with atomic(db):
            PermissionService._ensure_key_available(db, key)
            permission = Permission(key=key, description=description)
            db.add(permission)
            db.flush()
            audit_service.append(
                db, "permissions.create",
                {"permissionId": permission.id, "key": permission.key},
                audit,
            )
        db.refresh(permission)
        logger.info("Permission %s created (%s)", permission.id, permission.key)
        return permission

    @staticmethod
    def update(
        db: Session,
        permission_id: int,
        audit: Optional[AuditContext] = None,
        **changes,
    ) -> Permission:
        """Partially update a permission; only the supplied fields change."""
        changes = {k: v for k, v in changes.items() if k in _UPDATABLE}
        if changes.get("key") is not None:
            validate_permission_key(changes["key"])
        elif "key" in changes:
            changes.pop("key")

        with atomic(db):
            permission = PermissionService.get(db, permission_id, for_update=True)
            if "key" in changes and changes["key"] != permission.key:
                PermissionService._ensure_key_available(db, changes["key"], exclude_id=permission.id)
            for field, value in changes.items():
                setattr(permission, field, value)
            db.flush()
            audit_service.append(
                db, "permissions.update",
                {"permissionId": permission.id, "changes": sorted(changes)},
                audit,
            )
        db.refresh(permission)
        logger.info("Permission %s updated", permission.id)
        return permission

    @staticmethod
    def delete(db: Session, permission_id: int, audit: Optional[AuditContext] = None) -> None:
        """Delete a permission that no role references.

        The in-use check runs under a row lock on the permission inside the
        same transaction as the delete, so a concurrent role binding either
        blocks until we finish or makes the delete fail.
        """
        with atomic(db):
            permission = PermissionService.get(db, permission_id, for_update=True)
            in_use = (
                db.query(RolePermission.id)
                .filter(RolePermission.permission_id == permission.id)
                .first()
            )
            if in_use:
                raise ConflictError("Cannot delete a permission that is in use by a role")
            db.delete(permission)
            db.flush()
            audit_service.append(db, "permissions.delete", {"permissionId": permission_id}, audit)
        logger.info("Permission %s deleted", permission_id)


permission_service = PermissionService()
