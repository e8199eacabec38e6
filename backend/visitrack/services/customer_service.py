# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Service

OWNERSHIP: A customer belongs to the user who created it (created_by_id).
Administrators see every customer, managers the customers of users in their
department, sales users their own. The owner only changes through
transfer_customer, an administrative action.

Every operation makes exactly one access guard call before it reads or
writes a record. A customer that exists but is outside the caller's scope is
reported as ForbiddenError, never as NotFoundError.
"""

import logging

from sqlalchemy import or_

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Department, School, User, VisitRecord
from ..permissions import Action
from ..types import Identity, Ownership
from ..validation import ConflictError, ValidationError
from .access_service import assert_mutable, assert_readable
from .pagination import paginate_query
from .scope_service import scoped_query

logger = logging.getLogger(__name__)


def _load(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def _check_placement(patch: dict, current: Customer | None = None) -> None:
    """School and department must exist, and the department must belong to the school."""
    school_id = patch.get("school_id", current.school_id if current else None)
    department_id = patch.get("department_id", current.department_id if current else None)

    if school_id is not None and db.session.get(School, school_id) is None:
        raise ValidationError("school_id does not exist")

    if department_id is not None:
        department = db.session.get(Department, department_id)
        if department is None:
            raise ValidationError("department_id does not exist")
        if school_id is None:
            patch["school_id"] = department.school_id
        elif department.school_id != school_id:
            raise ValidationError("department_id does not belong to school_id")


def list_customers(
    identity: Identity,
    *,
    keyword: str | None = None,
    school_id: int | None = None,
    department_id: int | None = None,
    status=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Customers visible to ``identity``, newest first."""
    query = scoped_query(Customer, Customer.created_by_id, identity)

    if keyword:
        like = f"%{keyword.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(like),
            Customer.phone.ilike(like),
            Customer.email.ilike(like),
        ))
    if school_id is not None:
        query = query.filter(Customer.school_id == school_id)
    if department_id is not None:
        query = query.filter(Customer.department_id == department_id)
    if status is not None:
        query = query.filter(Customer.status == status)

    query = query.order_by(Customer.created_at.desc(), Customer.id.desc())
    return paginate_query(query, page, per_page)


def get_customer(customer_id: int, identity: Identity) -> Customer:
    customer = _load(customer_id)
    assert_readable(customer, identity)
    return customer


def create_customer(*, patch: dict, identity: Identity) -> Customer:
    """
    Create a customer owned by the caller.

    ``patch`` comes from validate_payload and never carries created_by_id.
    """
    assert_mutable(Ownership(identity.id, identity.department), identity, Action.CREATE)
    _check_placement(patch)

    customer = Customer(**patch)
    customer.created_by_id = identity.id
    db.session.add(customer)
    db.session.commit()

    logger.info("Customer %s created by %s", customer.id, identity.username)
    return customer


def update_customer(customer_id: int, *, patch: dict, identity: Identity) -> Customer:
    customer = _load(customer_id)
    assert_mutable(customer, identity, Action.UPDATE)
    _check_placement(patch, current=customer)

    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def delete_customer(customer_id: int, identity: Identity) -> None:
    """Delete one customer. Refused while it still has visit records."""
    customer = _load(customer_id)
    assert_mutable(customer, identity, Action.DELETE)

    if _has_visits([customer.id]):
        raise ConflictError("Customer has visit records and cannot be deleted")

    db.session.delete(customer)
    db.session.commit()
    logger.info("Customer %s deleted by %s", customer_id, identity.username)


def batch_delete_customers(customer_ids: list[int], identity: Identity) -> int:
    """
    Delete several customers, all or nothing.

    Every id must exist and pass the batch-delete check. Any customer with
    visit records blocks the whole batch.
    """
    ids = list(dict.fromkeys(customer_ids))
    customers = db.session.query(Customer).filter(Customer.id.in_(ids)).all()
    found = {c.id for c in customers}
    missing = [cid for cid in ids if cid not in found]
    if missing:
        raise NotFoundError(f"Customer not found: {missing[0]}")

    for customer in customers:
        assert_mutable(customer, identity, Action.BATCH_DELETE)

    if _has_visits(ids):
        raise ConflictError("Some customers have visit records and cannot be deleted")

    for customer in customers:
        db.session.delete(customer)
    db.session.commit()

    logger.info("Batch deleted %d customers by %s", len(customers), identity.username)
    return len(customers)


def transfer_customer(customer_id: int, new_owner_id: int, identity: Identity) -> Customer:
    """Reassign a customer to another user. Administrators only."""
    customer = _load(customer_id)
    assert_mutable(customer, identity, Action.ADMINISTER)

    new_owner = db.session.get(User, new_owner_id)
    if new_owner is None:
        raise NotFoundError("User not found")
    if not new_owner.is_active:
        raise ValidationError("Cannot transfer to an inactive user")

    previous = customer.created_by_id
    customer.created_by_id = new_owner.id
    db.session.commit()

    logger.info(
        "Customer %s transferred from user %s to user %s by %s",
        customer.id, previous, new_owner.id, identity.username,
    )
    return customer


def _has_visits(customer_ids: list[int]) -> bool:
    return db.session.query(VisitRecord.id).filter(
        VisitRecord.customer_id.in_(customer_ids)
    ).first() is not None
