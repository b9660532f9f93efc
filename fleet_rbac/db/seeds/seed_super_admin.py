"""Seed the super-admin user from env vars."""

import logging

from sqlalchemy.orm import Session

from fleet_rbac.core.config import settings
from fleet_rbac.services.role_service import role_service
from fleet_rbac.services.user_service import user_service

logger = logging.getLogger("fleet_rbac.seeds")


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user bound to the admin role if not already present."""
    admin_role = role_service.get_by_name(db, "admin")
    if not admin_role:
        logger.warning("admin role not found. Run seed_roles first.")
        return

    if user_service.get_by_email(db, settings.SUPER_ADMIN_EMAIL):
        logger.info("Super admin '%s' already exists, skipping.", settings.SUPER_ADMIN_EMAIL)
        return

    user_service.create(
        db,
        name=settings.SUPER_ADMIN_NAME,
        email=settings.SUPER_ADMIN_EMAIL,
        role_id=admin_role.id,
        password=settings.SUPER_ADMIN_PASSWORD,
    )
    logger.info("Created super admin: %s", settings.SUPER_ADMIN_EMAIL)
