"""
Access guard: the one call entity services make before returning or
changing a record.

The guard composes the role policy table (permissions package) with the
ownership scope resolver. It is pure given (resource, identity): no queries,
no audit writes. Callers that want a denial recorded do it at the route or
decorator layer.

Every denial raises ForbiddenError with the same generic message, whether
the role or the ownership test failed.
"""

from ..errors import ForbiddenError
from ..permissions import Action, can_administer, can_delete_batch, can_mutate
from ..types import Identity, Ownership
from .scope_service import scope_for


def ownership_of(resource) -> Ownership:
    """Accept an Ownership or any model exposing ``.ownership``."""
    if isinstance(resource, Ownership):
        return resource
    ownership = getattr(resource, "ownership", None)
    if not isinstance(ownership, Ownership):
        raise TypeError(f"{type(resource).__name__} does not expose ownership")
    return ownership


def is_readable(resource, identity: Identity) -> bool:
    ownership = ownership_of(resource)
    if ownership.shared:
        return True
    return scope_for(identity).permits(ownership)


def assert_readable(resource, identity: Identity) -> None:
    """Raise ForbiddenError unless ``identity`` may see ``resource``."""
    if not is_readable(resource, identity):
        raise ForbiddenError()


def assert_admin_action(identity: Identity) -> None:
    """Raise ForbiddenError for anyone but an administrator."""
    if not can_administer(identity.role):
        raise ForbiddenError()


def assert_mutable(resource, identity: Identity, action: Action = Action.UPDATE) -> None:
    """
    Raise ForbiddenError unless ``identity`` may apply ``action`` to ``resource``.

    - ADMINISTER: administrators only, regardless of ownership.
    - BATCH_DELETE: the role policy must allow batch deletes, then the
      record must be within the caller's scope.
    - Shared reference data: the role policy must allow blanket mutation.
    - Owned records (CREATE / UPDATE / DELETE): the caller must be able to
      see the record. Sales may change what they own.
    """
    action = Action(action)

    if action == Action.ADMINISTER:
        assert_admin_action(identity)
        return

    if action == Action.BATCH_DELETE and not can_delete_batch(identity.role):
        raise ForbiddenError()

    ownership = ownership_of(resource)
    if ownership.shared:
        if not can_mutate(identity.role):
            raise ForbiddenError()
        return

    if not scope_for(identity).permits(ownership):
        raise ForbiddenError()
