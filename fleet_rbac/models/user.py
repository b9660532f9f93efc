"""User model."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from fleet_rbac.db.base import Base


class UserStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class User(Base):
    """Platform user bound to at most one role."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)  # stored lower-cased
    hashed_password = Column(String(255), nullable=False)
    status = Column(
        Enum(UserStatus, native_enum=False, length=16),
        default=UserStatus.active,
        nullable=False,
    )
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=True, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    role = relationship("Role", lazy="joined")

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.active
