"""Permission catalog model."""

from sqlalchemy import Column, Integer, String, Text, DateTime, func
from fleet_rbac.db.base import Base


class Permission(Base):
    """A flat ``module.action`` capability key."""
    __tablename__ = "permissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    key = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
