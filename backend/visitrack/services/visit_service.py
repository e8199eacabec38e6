# Overview: Service-layer operations for visit records; encapsulates business logic and database work.

"""
Visit Record Service

OWNERSHIP: sales_id is the owner of a visit. It is always the caller at
creation time and is never taken from client input. Visibility follows the
same scope rules as customers, keyed on sales_id instead of created_by_id.

A visit can only be logged against a customer the caller can see.
"""

import logging
from datetime import date

from ..errors import NotFoundError
from ..extensions import db
from ..models import VisitRecord, VisitStatus
from ..permissions import Action
from ..types import Identity
from ..validation import ValidationError
from . import customer_service
from .access_service import assert_mutable, assert_readable
from .pagination import paginate_query
from .scope_service import scoped_query

logger = logging.getLogger(__name__)

# Fields carried over by copy_visit; outcome fields start fresh.
_COPY_FIELDS = (
    "customer_id",
    "visit_time",
    "duration_minutes",
    "visit_type",
    "location",
    "business_items",
    "pain_points",
    "competitors",
    "budget_range",
    "decision_timeline",
)


def _load(visit_id: int) -> VisitRecord:
    visit = db.session.get(VisitRecord, visit_id)
    if visit is None:
        raise NotFoundError("Visit record not found")
    return visit


def _check_rating(patch: dict) -> None:
    rating = patch.get("rating")
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("rating must be between 1 and 5")


def list_visits(
    identity: Identity,
    *,
    customer_id: int | None = None,
    status=None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """Visits visible to ``identity``, most recent visit date first."""
    query = scoped_query(VisitRecord, VisitRecord.sales_id, identity)

    if customer_id is not None:
        query = query.filter(VisitRecord.customer_id == customer_id)
    if status is not None:
        query = query.filter(VisitRecord.status == status)
    if date_from is not None:
        query = query.filter(VisitRecord.visit_date >= date_from)
    if date_to is not None:
        query = query.filter(VisitRecord.visit_date <= date_to)

    query = query.order_by(VisitRecord.visit_date.desc(), VisitRecord.id.desc())
    return paginate_query(query, page, per_page)


def get_visit(visit_id: int, identity: Identity) -> VisitRecord:
    visit = _load(visit_id)
    assert_readable(visit, identity)
    return visit


def create_visit(*, patch: dict, identity: Identity) -> VisitRecord:
    """
    Log a visit owned by the caller.

    The customer must exist and be readable by the caller; that read check is
    this operation's guard call.
    """
    customer_id = patch.get("customer_id")
    if customer_id is None:
        raise ValidationError("Missing required fields: customer_id")
    customer_service.get_customer(customer_id, identity)
    _check_rating(patch)

    visit = VisitRecord(**patch)
    visit.sales_id = identity.id
    db.session.add(visit)
    db.session.commit()

    logger.info("Visit %s logged by %s for customer %s", visit.id, identity.username, customer_id)
    return visit


def update_visit(visit_id: int, *, patch: dict, identity: Identity) -> VisitRecord:
    visit = _load(visit_id)
    assert_mutable(visit, identity, Action.UPDATE)
    _check_rating(patch)

    new_customer_id = patch.get("customer_id")
    if new_customer_id is not None and new_customer_id != visit.customer_id:
        customer_service.get_customer(new_customer_id, identity)

    for key, value in patch.items():
        setattr(visit, key, value)
    db.session.commit()
    return visit


def update_visit_status(visit_id: int, status, identity: Identity) -> VisitRecord:
    """Move a visit to a new status (e.g. SCHEDULED -> COMPLETED)."""
    if not isinstance(status, VisitStatus):
        try:
            status = VisitStatus[str(status).strip().upper()]
        except KeyError:
            allowed = ", ".join(s.name for s in VisitStatus)
            raise ValidationError(f"status must be one of: {allowed}")

    visit = _load(visit_id)
    assert_mutable(visit, identity, Action.UPDATE)

    visit.status = status
    db.session.commit()
    return visit


def copy_visit(visit_id: int, identity: Identity, *, visit_date: date | None = None) -> VisitRecord:
    """
    Start a new scheduled visit from an existing one the caller can see.

    The copy is owned by the caller, whoever owned the source. Like any new
    visit, it can only be logged against a customer the caller can see.
    """
    source = _load(visit_id)
    assert_readable(source, identity)
    customer_service.get_customer(source.customer_id, identity)

    copy = VisitRecord(**{field: getattr(source, field) for field in _COPY_FIELDS})
    copy.visit_date = visit_date or date.today()
    copy.status = VisitStatus.SCHEDULED
    copy.sales_id = identity.id
    db.session.add(copy)
    db.session.commit()
    return copy


def delete_visit(visit_id: int, identity: Identity) -> None:
    visit = _load(visit_id)
    assert_mutable(visit, identity, Action.DELETE)
    db.session.delete(visit)
    db.session.commit()


def batch_delete_visits(visit_ids: list[int], identity: Identity) -> int:
    """Delete several visits, all or nothing."""
    ids = list(dict.fromkeys(visit_ids))
    visits = db.session.query(VisitRecord).filter(VisitRecord.id.in_(ids)).all()
    found = {v.id for v in visits}
    missing = [vid for vid in ids if vid not in found]
    if missing:
        raise NotFoundError(f"Visit record not found: {missing[0]}")

    for visit in visits:
        assert_mutable(visit, identity, Action.BATCH_DELETE)

    for visit in visits:
        db.session.delete(visit)
    db.session.commit()

    logger.info("Batch deleted %d visits by %s", len(visits), identity.username)
    return len(visits)
