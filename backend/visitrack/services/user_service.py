# Overview: Service-layer operations for user accounts; encapsulates business logic and database work.

"""
User Service

A user record is owned by the user itself, so the usual scope rules give:
administrators see every account, managers the accounts in their department,
sales users only themselves.

Account lifecycle (create, role, department, status, password reset, delete)
is an administrative action. Anyone may edit the profile fields of their own
account.
"""

import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError
from ..extensions import db
from ..models import Customer, User, UserStatus, VisitRecord
from ..permissions import Action, Role, parse_role
from ..types import Identity
from ..validation import ConflictError, ValidationError, optional_text, require_text, validate_email
from .access_service import assert_admin_action, assert_mutable, assert_readable
from .auth_service import exists_by_email, exists_by_username, hash_password
from .pagination import paginate_query
from .scope_service import scoped_query

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {"real_name", "email", "phone", "avatar_url"}
ADMIN_FIELDS = PROFILE_FIELDS | {"role", "department"}


def _load(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _clean_fields(fields: dict) -> dict:
    """Normalize the user-editable fields present in ``fields``."""
    clean = {}
    if "real_name" in fields:
        clean["real_name"] = require_text(fields["real_name"], "real_name", max_length=100)
    if "email" in fields:
        clean["email"] = validate_email(fields["email"])
    if "phone" in fields:
        clean["phone"] = optional_text(fields["phone"], "phone", max_length=20)
    if "avatar_url" in fields:
        clean["avatar_url"] = optional_text(fields["avatar_url"], "avatar_url", max_length=255)
    if "department" in fields:
        clean["department"] = optional_text(fields["department"], "department", max_length=100)
    if "role" in fields:
        try:
            clean["role"] = parse_role(fields["role"])
        except ValueError:
            allowed = ", ".join(r.value for r in Role)
            raise ValidationError(f"role must be one of: {allowed}")
    return clean


def _parse_status(value) -> UserStatus:
    if isinstance(value, UserStatus):
        return value
    try:
        return UserStatus[str(value).strip().upper()]
    except KeyError:
        raise ValidationError("status must be one of: ACTIVE, INACTIVE")


def list_users(
    identity: Identity,
    *,
    keyword: str | None = None,
    role=None,
    status=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = scoped_query(User, User.id, identity)
    if keyword:
        like = f"%{keyword.strip()}%"
        query = query.filter(or_(User.username.ilike(like), User.real_name.ilike(like)))
    if role is not None:
        query = query.filter(User.role == parse_role(role))
    if status is not None:
        query = query.filter(User.status == _parse_status(status))
    return paginate_query(query.order_by(User.id.asc()), page, per_page)


def get_user(user_id: int, identity: Identity) -> User:
    user = _load(user_id)
    assert_readable(user, identity)
    return user


def create_user(
    *,
    username: str,
    password: str,
    real_name: str,
    identity: Identity,
    role=Role.SALES,
    department: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> User:
    """Create an account with any role. Administrators only."""
    assert_admin_action(identity)

    username = require_text(username, "username", max_length=50)
    fields = _clean_fields({
        "real_name": real_name,
        "email": email,
        "phone": phone,
        "department": department,
        "role": role,
    })

    if exists_by_username(username):
        raise ConflictError("Username already exists")
    if exists_by_email(fields["email"]):
        raise ConflictError("Email already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        status=UserStatus.ACTIVE,
        **fields,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Username or email already exists")

    logger.info("User %s (%s) created by %s", username, user.role.value, identity.username)
    return user


def update_user(user_id: int, fields: dict, identity: Identity) -> User:
    """
    Update an account.

    Profile fields of one's own account are a normal update; anything else
    (another user's account, role, department) is an administrative action.
    """
    unknown = set(fields) - ADMIN_FIELDS
    if unknown:
        raise ValidationError(f"Field not allowed: {sorted(unknown)[0]}")

    user = _load(user_id)
    if user.id == identity.id and set(fields) <= PROFILE_FIELDS:
        assert_mutable(user, identity, Action.UPDATE)
    else:
        assert_mutable(user, identity, Action.ADMINISTER)

    clean = _clean_fields(fields)
    if clean.get("email") and clean["email"] != user.email and exists_by_email(clean["email"]):
        raise ConflictError("Email already exists")

    for key, value in clean.items():
        setattr(user, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already exists")
    return user


def set_user_status(user_id: int, status, identity: Identity) -> User:
    """Activate or deactivate an account. Administrators cannot disable themselves."""
    status = _parse_status(status)
    user = _load(user_id)
    assert_mutable(user, identity, Action.ADMINISTER)

    if user.id == identity.id and status == UserStatus.INACTIVE:
        raise ValidationError("You cannot deactivate your own account")

    user.status = status
    db.session.commit()
    logger.info("User %s set to %s by %s", user.username, status.value, identity.username)
    return user


def reset_password(user_id: int, new_password: str, identity: Identity) -> User:
    """Overwrite another user's password without knowing the old one."""
    user = _load(user_id)
    assert_mutable(user, identity, Action.ADMINISTER)

    user.password_hash = hash_password(new_password)
    db.session.commit()
    logger.info("Password reset for %s by %s", user.username, identity.username)
    return user


def delete_user(user_id: int, identity: Identity) -> None:
    """Delete an account that owns no customers or visits."""
    user = _load(user_id)
    assert_mutable(user, identity, Action.ADMINISTER)

    if user.id == identity.id:
        raise ValidationError("You cannot delete your own account")

    owns_customers = db.session.query(Customer.id).filter(Customer.created_by_id == user.id).first()
    owns_visits = db.session.query(VisitRecord.id).filter(VisitRecord.sales_id == user.id).first()
    if owns_customers is not None or owns_visits is not None:
        raise ConflictError("User owns customers or visit records; transfer them first")

    db.session.delete(user)
    db.session.commit()
    logger.info("User %s deleted by %s", user_id, identity.username)
