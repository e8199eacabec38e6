# Overview: Pure lookups against the role policy table.

from .definitions import ROLE_POLICY
from .roles import Role


def parse_role(value) -> Role:
    """Coerce a role name or Role into a Role; raises ValueError for unknown names."""
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        return Role(value.strip().upper())
    raise ValueError(f"Unknown role: {value!r}")


def can_mutate(role) -> bool:
    return ROLE_POLICY[parse_role(role)].can_mutate


def can_delete_batch(role) -> bool:
    return ROLE_POLICY[parse_role(role)].can_delete_batch


def can_administer(role) -> bool:
    return ROLE_POLICY[parse_role(role)].can_administer
