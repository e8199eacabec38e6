"""
Ownership scope resolver: what rows a requesting identity may see.

WHY: Visibility is the one rule every entity service shares. Resolving it in
one place means no service re-implements "administrators see everything,
managers see their department, sales see their own".

SECURITY INVARIANTS:
1. A scope is computed from the identity of the current request and never
   cached across requests (department or role may change between them).
2. Rows without an owner are visible under AllScope only.
3. A manager without a department sees nothing but their own rows.

USAGE:
    scope = scope_for(g.identity)
    customers = scope.apply(Customer.query, Customer.created_by_id).all()
    if not scope.permits(customer.ownership): ...
"""

from dataclasses import dataclass, field

from sqlalchemy import false, or_, select

from ..extensions import db
from ..models import User
from ..permissions import Role
from ..types import Identity, Ownership


@dataclass(frozen=True)
class AllScope:
    """Administrator: no restriction."""

    def permits(self, ownership: Ownership) -> bool:
        return True

    def apply(self, query, owner_column):
        return query


@dataclass(frozen=True)
class DepartmentScope:
    """
    Manager: rows owned by users whose department string equals ``department``.

    ``user_id`` is the manager's own id so their own rows stay visible even
    when their department is unset. It does not take part in equality.
    """
    department: str | None
    user_id: int | None = field(default=None, compare=False)

    def permits(self, ownership: Ownership) -> bool:
        if ownership.owner_id is None:
            return False
        if self.user_id is not None and ownership.owner_id == self.user_id:
            return True
        return self.department is not None and ownership.owner_department == self.department

    def apply(self, query, owner_column):
        clauses = []
        if self.user_id is not None:
            clauses.append(owner_column == self.user_id)
        if self.department is not None:
            members = select(User.id).where(User.department == self.department)
            clauses.append(owner_column.in_(members))
        if not clauses:
            return query.filter(false())
        return query.filter(or_(*clauses))


@dataclass(frozen=True)
class OwnerScope:
    """Sales: rows owned by ``user_id`` only."""
    user_id: int

    def permits(self, ownership: Ownership) -> bool:
        return ownership.owner_id is not None and ownership.owner_id == self.user_id

    def apply(self, query, owner_column):
        return query.filter(owner_column == self.user_id)


def scope_for(identity: Identity):
    """Resolve the visibility scope for one request."""
    if identity.role == Role.ADMIN:
        return AllScope()
    if identity.role == Role.MANAGER:
        return DepartmentScope(department=identity.department, user_id=identity.id)
    if identity.role == Role.SALES:
        return OwnerScope(user_id=identity.id)
    raise ValueError(f"Unknown role: {identity.role!r}")


def scoped_query(model, owner_column, identity: Identity):
    """
    Base query for ``model`` filtered to what ``identity`` may see.

    Usage:
        visits = scoped_query(VisitRecord, VisitRecord.sales_id, g.identity).all()
    """
    return scope_for(identity).apply(db.session.query(model), owner_column)
