"""Authorization gate.

A pure check of a required permission key against an already-resolved
principal. Nothing here touches storage: the permission set is supplied by the
caller, which keeps the gate testable without a database or a server.
"""

from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, Iterable

from fleet_rbac.core.exceptions import ForbiddenError


@dataclass(frozen=True)
class Principal:
    """Resolved identity presented to the gate for one request."""

    user_id: int
    status: str = "active"
    role_id: Optional[int] = None
    role_name: Optional[str] = None
    permissions: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def build(cls, user_id: int, permissions: Iterable[str], **kwargs) -> "Principal":
        return cls(user_id=user_id, permissions=frozenset(permissions), **kwargs)

    def has(self, key: str) -> bool:
        return key in self.permissions


def authorize(principal: Principal, required_key: str) -> bool:
    """Return True iff ``required_key`` is in the principal's permission set."""
    return principal.has(required_key)


def require_permission(required_key: str) -> Callable[[Principal], Principal]:
    """Build a guard for ``required_key``.

    The guard returns the principal unchanged when allowed and raises
    ForbiddenError otherwise.
    """

    def guard(principal: Principal) -> Principal:
        if not authorize(principal, required_key):
            raise ForbiddenError(f"Missing required permission '{required_key}'")
        return principal

    return guard
