"""
Auth domain types shared by the token, scope and access modules.

Everything here is immutable: an Identity is loaded once per request and an
Ownership is derived from a record at the moment it is checked.
"""
from dataclasses import dataclass, field
from datetime import datetime

from .permissions import Role, parse_role


@dataclass(frozen=True)
class Identity:
    """The requesting user for the duration of one request."""
    id: int
    username: str
    password_hash: str = field(repr=False)
    role: Role
    department: str | None
    is_active: bool

    @classmethod
    def from_user(cls, user, role=None) -> "Identity":
        """Build from a User row; ``role`` overrides the stored role (token claim)."""
        return cls(
            id=user.id,
            username=user.username,
            password_hash=user.password_hash,
            role=parse_role(role if role is not None else user.role),
            department=user.department,
            is_active=user.is_active,
        )


@dataclass(frozen=True)
class TokenClaims:
    """Decoded access token."""
    subject: str  # username
    role: Role
    issued_at: datetime
    expires_at: datetime
    user_id: int | None = None  # uid; absent on tokens not bound to an account


@dataclass(frozen=True)
class Ownership:
    """
    Who a record belongs to.

    owner_id is the creator/assignee user id, owner_department that user's
    department. Either may be None for historical rows; such rows are only
    visible to administrators. ``shared`` marks reference data (schools,
    departments) that every authenticated user may read.
    """
    owner_id: int | None
    owner_department: str | None
    shared: bool = False


SHARED = Ownership(owner_id=None, owner_department=None, shared=True)
