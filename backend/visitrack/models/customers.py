from __future__ import annotations

import enum

from ..extensions import db
from ..types import Ownership
from ..time_utils import to_utc_z


class InfluenceLevel(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DecisionPower(str, enum.Enum):
    DECISION_MAKER = "DECISION_MAKER"
    INFLUENCER = "INFLUENCER"
    USER = "USER"
    OTHER = "OTHER"


class CustomerStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    POTENTIAL = "POTENTIAL"
    CONVERTED = "CONVERTED"
    LOST = "LOST"
    SUSPENDED = "SUSPENDED"


class Customer(db.Model):
    """
    A contact person at a school department.

    OWNERSHIP: created_by_id is the sales user who owns the customer. It is set
    at creation and only changes through an administrative transfer. Rows
    without an owner are visible to administrators only.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_created_by", "created_by_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    position = db.Column(db.String(100), nullable=True)
    title = db.Column(db.String(100), nullable=True)

    school_id = db.Column(db.Integer, db.ForeignKey("schools.id"), nullable=True, index=True)
    department_id = db.Column(db.Integer, db.ForeignKey("departments.id"), nullable=True, index=True)

    phone = db.Column(db.String(20), nullable=True)
    wechat = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(100), nullable=True)
    office_location = db.Column(db.String(255), nullable=True)
    research_direction = db.Column(db.Text, nullable=True)

    influence_level = db.Column(db.Enum(InfluenceLevel, name="influence_level"), nullable=False, default=InfluenceLevel.MEDIUM)
    decision_power = db.Column(db.Enum(DecisionPower, name="decision_power"), nullable=False, default=DecisionPower.OTHER)
    status = db.Column(db.Enum(CustomerStatus, name="customer_status"), nullable=False, default=CustomerStatus.ACTIVE)

    birthday = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    school = db.relationship("School", backref=db.backref("customers", lazy=True))
    department = db.relationship("Department", backref=db.backref("customers", lazy=True))
    created_by = db.relationship("User", backref=db.backref("customers", lazy=True))

    @property
    def ownership(self) -> Ownership:
        owner = self.created_by
        return Ownership(
            owner_id=self.created_by_id,
            owner_department=owner.department if owner is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "title": self.title,
            "school_id": self.school_id,
            "school_name": self.school.name if self.school else None,
            "department_id": self.department_id,
            "department_name": self.department.name if self.department else None,
            "phone": self.phone,
            "wechat": self.wechat,
            "email": self.email,
            "office_location": self.office_location,
            "research_direction": self.research_direction,
            "influence_level": self.influence_level.value,
            "decision_power": self.decision_power.value,
            "status": self.status.value,
            "birthday": self.birthday.isoformat() if self.birthday else None,
            "notes": self.notes,
            "created_by_id": self.created_by_id,
            "created_by_name": self.created_by.real_name if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
