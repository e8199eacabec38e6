# Overview: Role policy package.
# Re-exports the role enum and the flat decision table.

from .roles import Role, ROLE_DESCRIPTIONS
from .definitions import Action, RolePolicy, ROLE_POLICY
from .helpers import (
    parse_role,
    can_mutate,
    can_delete_batch,
    can_administer,
)

__all__ = [
    "Role",
    "ROLE_DESCRIPTIONS",
    "Action",
    "RolePolicy",
    "ROLE_POLICY",
    "parse_role",
    "can_mutate",
    "can_delete_batch",
    "can_administer",
]
