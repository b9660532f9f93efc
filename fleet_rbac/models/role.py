"""Role and RolePermission models for RBAC."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from fleet_rbac.db.base import Base


class Role(Base):
    """Named bundle of permission keys."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    # Read-only view; rows are replaced explicitly by RoleService.set_permissions
    permission_links = relationship(
        "RolePermission",
        lazy="selectin",
        viewonly=True,
        order_by="RolePermission.id",
    )

    @property
    def permission_keys(self) -> list[str]:
        return sorted(link.permission.key for link in self.permission_links)


class RolePermission(Base):
    """Join row granting one permission to one role."""
    __tablename__ = "role_permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(
        Integer, ForeignKey("permissions.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    permission = relationship("Permission", lazy="joined")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )
