# Overview: Role policy decision table and the action classes it covers.
# Each row is: role -> (can_mutate, can_delete_batch, can_administer)

from dataclasses import dataclass
from enum import Enum

from .roles import Role


class Action(str, Enum):
    """Action classes checked by the access guard before a write."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    BATCH_DELETE = "BATCH_DELETE"
    ADMINISTER = "ADMINISTER"


@dataclass(frozen=True)
class RolePolicy:
    # Blanket create/update on shared reference data (departments).
    # Roles without it may still change records they own.
    can_mutate: bool
    # Batch destructive operations on any entity type.
    can_delete_batch: bool
    # School and user-account lifecycle.
    can_administer: bool


ROLE_POLICY = {
    Role.ADMIN: RolePolicy(can_mutate=True, can_delete_batch=True, can_administer=True),
    Role.MANAGER: RolePolicy(can_mutate=True, can_delete_batch=True, can_administer=False),
    Role.SALES: RolePolicy(can_mutate=False, can_delete_batch=False, can_administer=False),
}
