"""Role service: roles and the permission set each role grants."""

import logging
from typing import Iterable, List, Optional

from sqlalchemy import insert
from sqlalchemy.orm import Session

from fleet_rbac.core.exceptions import ConflictError, NotFoundError
from fleet_rbac.core.validators import validate_name, validate_permission_key
from fleet_rbac.db.session import atomic, insert_ignore
from fleet_rbac.models.permission import Permission
from fleet_rbac.models.role import Role, RolePermission
from fleet_rbac.models.user import User
from fleet_rbac.services.audit_service import audit_service, AuditContext

logger = logging.getLogger("fleet_rbac.roles")


class RoleService:
    """Owns roles and their RolePermission rows."""

    @staticmethod
    def list_roles(db: Session) -> List[Role]:
        return db.query(Role).order_by(Role.name.asc()).all()

    @staticmethod
    def get(db: Session, role_id: int, for_update: bool = False) -> Role:
        query = db.query(Role).filter(Role.id == role_id)
        if for_update:
            query = query.with_for_update()
        role = query.first()
        if not role:
            raise NotFoundError(f"Role {role_id} not found")
        return role

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Role]:
        return db.query(Role).filter(Role.name == name).first()

    @staticmethod
    def _ensure_name_available(db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        query = db.query(Role.id).filter(Role.name == name)
        if exclude_id is not None:
            query = query.filter(Role.id != exclude_id)
        if query.first():
            raise ConflictError(f"Role '{name}' already exists")

    @staticmethod
    def create(
        db: Session,
        name: str,
        description: Optional[str] = None,
        audit: Optional[AuditContext] = None,
    ) -> Role:
        """Create a role with an empty permission set."""
        name = validate_name(name, max_length=50)
        with atomic(db):
            RoleService._ensure_name_available(db, name)
            role = Role(name=name, description=description)
            db.add(role)
            db.flush()
            audit_service.append(db, "roles.create", {"roleId": role.id, "name": role.name}, audit)
        db.refresh(role)
        logger.info("Role %s created (%s)", role.id, role.name)
        return role

    @staticmethod
    def update(
        db: Session,
        role_id: int,
        name: str,
        description: Optional[str] = None,
        audit: Optional[AuditContext] = None,
    ) -> Role:
        """Rename a role; the description is only replaced when given."""
        name = validate_name(name, max_length=50)
        with atomic(db):
            role = RoleService.get(db, role_id, for_update=True)
            if name != role.name:
                RoleService._ensure_name_available(db, name, exclude_id=role.id)
            role.name = name
            if description is not None:
                role.description = description
            db.flush()
            audit_service.append(db, "roles.update", {"roleId": role.id}, audit)
        db.refresh(role)
        logger.info("Role %s updated", role.id)
        return role

    @staticmethod
    def set_permissions(
        db: Session,
        role_id: int,
        keys: Iterable[str],
        audit: Optional[AuditContext] = None,
    ) -> Role:
        """Replace the role's permission set with ``keys``.

        Runs as one transaction holding a row lock on the role:
          1. look up the permissions that already exist for ``keys``
          2. insert-or-skip the missing ones (safe against concurrent callers)
          3. re-read the full permission set for ``keys`` with a shared lock,
             failing with ConflictError if any key cannot be resolved
          4. delete every RolePermission row of the role
          5. insert one row per permission
        Readers outside the transaction keep seeing the previous set until
        commit, and repeating the call with the same keys is a no-op.
        """
        requested = list(keys)
        unique_keys = sorted(set(requested))
        for index, key in enumerate(unique_keys):
            validate_permission_key(key, field=f"permissions[{index}]")

        with atomic(db):
            role = RoleService.get(db, role_id, for_update=True)

            existing = {
                p.key for p in db.query(Permission).filter(Permission.key.in_(unique_keys)).all()
            } if unique_keys else set()
            missing = [k for k in unique_keys if k not in existing]
            insert_ignore(db, Permission, [{"key": k} for k in missing], ["key"])

            # Locking read: sees rows committed by concurrent inserts we skipped,
            # and keeps them from being deleted before we commit.
            resolved = dict(
                db.query(Permission.key, Permission.id)
                .filter(Permission.key.in_(unique_keys))
                .with_for_update(read=True)
                .all()
            ) if unique_keys else {}
            unresolved = [k for k in unique_keys if k not in resolved]
            if unresolved:
                logger.warning("Role %s: permissions vanished mid-update: %s", role_id, unresolved)
                raise ConflictError(
                    f"Permissions changed concurrently, retry: {', '.join(unresolved)}"
                )

            db.query(RolePermission).filter(
                RolePermission.role_id == role.id
            ).delete(synchronize_session=False)
            if resolved:
                db.execute(
                    insert(RolePermission),
                    [{"role_id": role.id, "permission_id": resolved[k]} for k in unique_keys],
                )

            audit_service.append(
                db, "roles.permissions.set",
                {"roleId": role.id, "permissions": requested},
                audit,
            )
        db.expire_all()
        role = RoleService.get(db, role_id)
        logger.info(
            "Role %s permissions replaced (%d keys, %d auto-created)",
            role_id, len(unique_keys), len(missing),
        )
        return role

    @staticmethod
    def delete(db: Session, role_id: int, audit: Optional[AuditContext] = None) -> None:
        """Delete a role no user is bound to, together with its RolePermission rows."""
        with atomic(db):
            role = RoleService.get(db, role_id, for_update=True)
            assigned = db.query(User.id).filter(User.role_id == role.id).first()
            if assigned:
                raise ConflictError("Cannot delete a role that is assigned to users")
            db.query(RolePermission).filter(
                RolePermission.role_id == role.id
            ).delete(synchronize_session=False)
            db.delete(role)
            db.flush()
            audit_service.append(db, "roles.delete", {"roleId": role_id}, audit)
        logger.info("Role %s deleted", role_id)


role_service = RoleService()
