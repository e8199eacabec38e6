from __future__ import annotations

import enum

from ..extensions import db
from ..permissions import Role
from ..types import Ownership
from ..time_utils import to_utc_z


class UserStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"

    @property
    def description(self) -> str:
        return {UserStatus.ACTIVE: "激活", UserStatus.INACTIVE: "禁用"}[self]


class User(db.Model):
    """
    User accounts: the credential store for authentication.

    WHY: Every customer and visit record is attributed to the user who owns
    it; role and department decide what else a user can see.
    Department is a free-text name. Managers see records of users whose
    department string is exactly equal to their own.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.Index("ix_users_department", "department"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(50), nullable=False, unique=True, index=True)
    email = db.Column(db.String(100), nullable=True, unique=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    real_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20), nullable=True)
    role = db.Column(db.Enum(Role, name="user_role"), nullable=False, default=Role.SALES)
    department = db.Column(db.String(100), nullable=True)
    avatar_url = db.Column(db.String(255), nullable=True)
    status = db.Column(db.Enum(UserStatus, name="user_status"), nullable=False, default=UserStatus.ACTIVE)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    @property
    def ownership(self) -> Ownership:
        # A user record is "owned" by the user itself.
        return Ownership(owner_id=self.id, owner_department=self.department)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "real_name": self.real_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role.value,
            "role_description": self.role.description,
            "department": self.department,
            "avatar_url": self.avatar_url,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }
