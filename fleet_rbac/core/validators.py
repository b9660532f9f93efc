"""Input validation helpers shared by the RBAC services."""

import re
from typing import Optional

from email_validator import validate_email, EmailNotValidError

from fleet_rbac.core.config import settings
from fleet_rbac.core.exceptions import ValidationError

PERMISSION_KEY_RE = re.compile(r"^[a-z]+\.[a-z]+$")
MIN_KEY_LENGTH = 3
MAX_KEY_LENGTH = 100
MIN_NAME_LENGTH = 2


def validate_permission_key(key: Optional[str], field: str = "key") -> str:
    """Return ``key`` if it is a well-formed ``module.action`` key."""
    if not isinstance(key, str) or len(key) < MIN_KEY_LENGTH or len(key) > MAX_KEY_LENGTH:
        raise ValidationError.for_field(
            field, f"Permission key must be {MIN_KEY_LENGTH}-{MAX_KEY_LENGTH} characters"
        )
    if not PERMISSION_KEY_RE.match(key):
        raise ValidationError.for_field(field, "Invalid format. Use: module.action")
    return key


def validate_name(name: Optional[str], field: str = "name", max_length: int = 255) -> str:
    """Strip ``name`` and check it has at least two characters."""
    value = (name or "").strip()
    if len(value) < MIN_NAME_LENGTH:
        raise ValidationError.for_field(field, f"{field} must have at least {MIN_NAME_LENGTH} characters")
    if len(value) > max_length:
        raise ValidationError.for_field(field, f"{field} must have at most {max_length} characters")
    return value


def normalize_email(email: Optional[str], field: str = "email") -> str:
    """Validate an address and return it lower-cased for case-insensitive lookup."""
    try:
        result = validate_email(email or "", check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError.for_field(field, str(exc))
    return result.normalized.lower()


def validate_password(password: str, field: str = "password") -> str:
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValidationError.for_field(
            field, f"Password must have at least {settings.MIN_PASSWORD_LENGTH} characters"
        )
    return password
