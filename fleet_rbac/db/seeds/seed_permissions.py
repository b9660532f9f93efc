"""Seed the base permission catalog."""

import logging

from sqlalchemy.orm import Session

from fleet_rbac.db.session import atomic, insert_ignore
from fleet_rbac.models.permission import Permission
from fleet_rbac.services.audit_service import audit_service

logger = logging.getLogger("fleet_rbac.seeds")

MODULES = [
    "dashboard", "users", "companies", "employees", "trucks", "trips",
    "expenses", "maintenance", "loads", "financial", "closings", "months",
    "reports",
]
ACTIONS = ["view", "create", "update", "delete"]

BASE_PERMISSIONS = (
    ["dashboard.view", "users.manage", "reports.export"]
    + [f"{module}.{action}" for module in MODULES if module != "dashboard" for action in ACTIONS]
)


def seed_permissions(db: Session) -> list[str]:
    """Insert the base permission keys that are not present yet.

    Every key actually added gets a system ``permissions.create`` audit entry.
    Returns the keys added by this run.
    """
    with atomic(db):
        present = {
            key for (key,) in db.query(Permission.key).filter(Permission.key.in_(BASE_PERMISSIONS))
        }
        missing = [key for key in BASE_PERMISSIONS if key not in present]
        insert_ignore(db, Permission, [{"key": key} for key in missing], ["key"])
        created = (
            db.query(Permission.id, Permission.key).filter(Permission.key.in_(missing)).all()
            if missing else []
        )
        for permission_id, key in created:
            audit_service.append(
                db, "permissions.create", {"permissionId": permission_id, "key": key}
            )
    logger.info(
        "Seeded %d new permission keys (%d already present)", len(created), len(present)
    )
    return sorted(key for _, key in created)
