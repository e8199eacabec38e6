# Overview: Service-layer operations for school departments (shared reference data).

from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, Department, School
from ..permissions import Action
from ..types import SHARED, Identity
from ..validation import ConflictError, ValidationError
from .access_service import assert_mutable, assert_readable


def _load(department_id: int) -> Department:
    department = db.session.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


def _commit_unique():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Department name already exists in this school")


def list_departments(identity: Identity, *, school_id: int | None = None) -> list[Department]:
    assert_readable(SHARED, identity)
    query = db.session.query(Department)
    if school_id is not None:
        query = query.filter(Department.school_id == school_id)
    return query.order_by(Department.school_id.asc(), Department.name.asc()).all()


def get_department(department_id: int, identity: Identity) -> Department:
    department = _load(department_id)
    assert_readable(department, identity)
    return department


def create_department(*, patch: dict, identity: Identity) -> Department:
    assert_mutable(SHARED, identity, Action.CREATE)
    if db.session.get(School, patch.get("school_id")) is None:
        raise ValidationError("school_id does not exist")

    department = Department(**patch)
    db.session.add(department)
    _commit_unique()
    return department


def update_department(department_id: int, *, patch: dict, identity: Identity) -> Department:
    department = _load(department_id)
    assert_mutable(department, identity, Action.UPDATE)
    if "school_id" in patch and db.session.get(School, patch["school_id"]) is None:
        raise ValidationError("school_id does not exist")

    for key, value in patch.items():
        setattr(department, key, value)
    _commit_unique()
    return department


def _in_use(department_ids: list[int]) -> bool:
    return db.session.query(Customer.id).filter(
        Customer.department_id.in_(department_ids)
    ).first() is not None


def delete_department(department_id: int, identity: Identity) -> None:
    """Delete a department. Refused while customers reference it."""
    department = _load(department_id)
    assert_mutable(department, identity, Action.DELETE)
    if _in_use([department.id]):
        raise ConflictError("Department has customers and cannot be deleted")
    db.session.delete(department)
    db.session.commit()


def batch_delete_departments(department_ids: list[int], identity: Identity) -> int:
    ids = list(dict.fromkeys(department_ids))
    departments = db.session.query(Department).filter(Department.id.in_(ids)).all()
    found = {d.id for d in departments}
    missing = [did for did in ids if did not in found]
    if missing:
        raise NotFoundError(f"Department not found: {missing[0]}")

    assert_mutable(SHARED, identity, Action.BATCH_DELETE)

    if _in_use(ids):
        raise ConflictError("Some departments have customers and cannot be deleted")
    for department in departments:
        db.session.delete(department)
    db.session.commit()
    return len(departments)
