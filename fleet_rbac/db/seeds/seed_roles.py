"""Seed default roles into the database."""

import logging

from sqlalchemy.orm import Session

from fleet_rbac.db.seeds.seed_permissions import BASE_PERMISSIONS
from fleet_rbac.services.role_service import role_service

logger = logging.getLogger("fleet_rbac.seeds")

DEFAULT_ROLES = [
    {
        "name": "admin",
        "description": "Full access, manages users, roles and permissions",
        "permissions": BASE_PERMISSIONS,
    },
    {
        "name": "viewer",
        "description": "Read-only access",
        "permissions": [key for key in BASE_PERMISSIONS if key.endswith(".view")],
    },
]


def seed_roles(db: Session) -> None:
    """Create missing default roles and reapply permission sets that drifted.

    Runs as the system: audit entries carry no user id. A role already holding
    exactly its default keys is left alone.
    """
    for role_data in DEFAULT_ROLES:
        role = role_service.get_by_name(db, role_data["name"])
        if role is None:
            role = role_service.create(db, role_data["name"], role_data["description"])
        if set(role.permission_keys) == set(role_data["permissions"]):
            logger.debug("Role %s already up to date", role.name)
            continue
        role_service.set_permissions(db, role.id, role_data["permissions"])

    logger.info("Seeded %d roles", len(DEFAULT_ROLES))
