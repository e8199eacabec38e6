from __future__ import annotations

import enum

from ..extensions import db
from ..types import SHARED, Ownership
from ..time_utils import to_utc_z


class SchoolType(str, enum.Enum):
    KEY = "KEY"
    REGULAR = "REGULAR"
    VOCATIONAL = "VOCATIONAL"
    OTHER = "OTHER"


class School(db.Model):
    """
    Schools visited by the sales team.

    Reference data: readable by every authenticated user, maintained by
    administrators only.
    """
    __tablename__ = "schools"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    province = db.Column(db.String(50), nullable=True)
    city = db.Column(db.String(50), nullable=True)
    school_type = db.Column(db.Enum(SchoolType, name="school_type"), nullable=False, default=SchoolType.REGULAR)
    contact_phone = db.Column(db.String(20), nullable=True)
    website = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    @property
    def ownership(self) -> Ownership:
        return SHARED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "province": self.province,
            "city": self.city,
            "school_type": self.school_type.value,
            "contact_phone": self.contact_phone,
            "website": self.website,
            "created_at": to_utc_z(self.created_at),
        }


class Department(db.Model):
    """
    Academic department within a school (the customer's department, not the
    sales user's department string).
    """
    __tablename__ = "departments"
    __table_args__ = (
        db.UniqueConstraint("school_id", "name", name="uq_departments_school_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    contact_phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    school = db.relationship("School", backref=db.backref("departments", lazy=True))

    @property
    def ownership(self) -> Ownership:
        return SHARED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "school_id": self.school_id,
            "school_name": self.school.name if self.school else None,
            "name": self.name,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }
