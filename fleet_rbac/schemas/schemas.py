"""Pydantic schemas for API request/response serialization.

Field names are snake_case in Python and camelCase on the wire.
"""

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from fleet_rbac.models.user import UserStatus

PERMISSION_KEY_PATTERN = r"^[a-z]+\.[a-z]+$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---- Auth ----
class LoginRequest(CamelModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=1)

class TokenResponse(CamelModel):
    access_token: str
    token_type: str = "bearer"

class PrincipalOut(CamelModel):
    user_id: int
    status: str
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    permissions: List[str] = []


# ---- Permission ----
class PermissionCreate(CamelModel):
    key: str = Field(..., min_length=3, max_length=100, pattern=PERMISSION_KEY_PATTERN)
    description: Optional[str] = None

class PermissionUpdate(CamelModel):
    key: Optional[str] = Field(None, min_length=3, max_length=100, pattern=PERMISSION_KEY_PATTERN)
    description: Optional[str] = None

class PermissionOut(CamelModel):
    id: int
    key: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None


# ---- Role ----
class RoleCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)

class RoleUpdate(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = Field(None, max_length=255)

class RolePermissionsSet(CamelModel):
    permissions: List[str] = []

class RoleOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[str] = []

    @classmethod
    def from_role(cls, role) -> "RoleOut":
        return cls(
            id=role.id,
            name=role.name,
            description=role.description,
            permissions=role.permission_keys,
        )


# ---- User ----
class RoleRef(CamelModel):
    id: int
    name: str

class UserOut(CamelModel):
    id: int
    name: str
    email: str
    status: UserStatus
    role: Optional[RoleRef] = None
    created_at: Optional[datetime] = None

class UserCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role_id: int
    status: UserStatus = UserStatus.active
    password: Optional[str] = None

class UserUpdate(CamelModel):
    name: str = Field(..., min_length=2, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    role_id: int
    status: UserStatus

class UserStatusUpdate(CamelModel):
    status: UserStatus

class UserCreatedResponse(CamelModel):
    user: UserOut
    temp_password: Optional[str] = None  # only present once, on creation


# ---- Audit ----
class AuditUserRef(CamelModel):
    id: int
    name: str
    email: str

class AuditLogOut(CamelModel):
    id: int
    action: str
    details: Optional[Any] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    user: Optional[AuditUserRef] = None

    @field_validator("details", mode="before")
    @classmethod
    def _parse_details(cls, value):
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return value
        return value

class AuditLogPage(CamelModel):
    items: List[AuditLogOut]
    total: int
    page: int
    page_size: int


# ---- Generic ----
class MessageResponse(CamelModel):
    message: str
    detail: Optional[Any] = None
