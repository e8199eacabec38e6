# Overview: Service-layer operations for schools; encapsulates business logic and database work.

"""
School Service

Schools are shared reference data: every authenticated user reads them, only
administrators create, change or delete them.
"""

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Department, School
from ..permissions import Action
from ..types import SHARED, Identity
from ..validation import ConflictError
from .access_service import assert_mutable, assert_readable
from .pagination import paginate_query


def _load(school_id: int) -> School:
    school = db.session.get(School, school_id)
    if school is None:
        raise NotFoundError("School not found")
    return school


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("School name already exists")


def list_schools(
    identity: Identity,
    *,
    keyword: str | None = None,
    province: str | None = None,
    city: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    assert_readable(SHARED, identity)
    query = db.session.query(School)
    if keyword:
        like = f"%{keyword.strip()}%"
        query = query.filter(or_(School.name.ilike(like), School.address.ilike(like)))
    if province:
        query = query.filter(School.province == province)
    if city:
        query = query.filter(School.city == city)
    return paginate_query(query.order_by(School.name.asc(), School.id.asc()), page, per_page)


def get_school(school_id: int, identity: Identity) -> School:
    school = _load(school_id)
    assert_readable(school, identity)
    return school


def get_school_tree(school_id: int, identity: Identity) -> dict:
    """A school with its departments nested, as used by the customer form pickers."""
    school = get_school(school_id, identity)
    tree = school.to_dict()
    tree["departments"] = [
        d.to_dict() for d in sorted(school.departments, key=lambda d: (d.name, d.id))
    ]
    return tree


def create_school(*, patch: dict, identity: Identity) -> School:
    assert_mutable(SHARED, identity, Action.ADMINISTER)
    school = School(**patch)
    db.session.add(school)
    _commit_unique()
    return school


def update_school(school_id: int, *, patch: dict, identity: Identity) -> School:
    school = _load(school_id)
    assert_mutable(school, identity, Action.ADMINISTER)
    for key, value in patch.items():
        setattr(school, key, value)
    _commit_unique()
    return school


def delete_school(school_id: int, identity: Identity) -> None:
    """Delete a school and its departments. Refused while customers reference it."""
    school = _load(school_id)
    assert_mutable(school, identity, Action.ADMINISTER)

    in_use = db.session.query(Customer.id).filter(Customer.school_id == school.id).first()
    if in_use is not None:
        raise ConflictError("School has customers and cannot be deleted")

    for department in list(school.departments):
        db.session.delete(department)
    db.session.delete(school)
    db.session.commit()
