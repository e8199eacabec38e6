from __future__ import annotations

import enum

from ..extensions import db
from ..types import Ownership
from ..time_utils import to_utc_z


class VisitType(str, enum.Enum):
    FACE_TO_FACE = "FACE_TO_FACE"
    PHONE_CALL = "PHONE_CALL"
    VIDEO_CALL = "VIDEO_CALL"
    EMAIL = "EMAIL"
    WECHAT = "WECHAT"
    OTHER = "OTHER"


class VisitStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"
    NO_SHOW = "NO_SHOW"


class IntentLevel(str, enum.Enum):
    VERY_HIGH = "VERY_HIGH"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    NONE = "NONE"


class VisitRecord(db.Model):
    """
    One visit by a sales user to a customer.

    OWNERSHIP: sales_id is the assignee and owner. It is taken from the
    authenticated caller on creation and is not client-writable.
    """
    __tablename__ = "visit_records"
    __table_args__ = (
        db.Index("ix_visit_records_sales_date", "sales_id", "visit_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    sales_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    visit_date = db.Column(db.Date, nullable=False)
    visit_time = db.Column(db.Time, nullable=True)
    duration_minutes = db.Column(db.Integer, nullable=True)
    visit_type = db.Column(db.Enum(VisitType, name="visit_type"), nullable=False, default=VisitType.FACE_TO_FACE)
    status = db.Column(db.Enum(VisitStatus, name="visit_status"), nullable=False, default=VisitStatus.SCHEDULED)
    intent_level = db.Column(db.Enum(IntentLevel, name="intent_level"), nullable=True)

    location = db.Column(db.String(255), nullable=True)
    business_items = db.Column(db.Text, nullable=True)
    pain_points = db.Column(db.Text, nullable=True)
    competitors = db.Column(db.Text, nullable=True)
    budget_range = db.Column(db.String(100), nullable=True)
    decision_timeline = db.Column(db.String(100), nullable=True)
    next_step = db.Column(db.Text, nullable=True)
    follow_up_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    materials_left = db.Column(db.Boolean, nullable=False, default=False)
    wechat_added = db.Column(db.Boolean, nullable=False, default=False)
    rating = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    customer = db.relationship("Customer", backref=db.backref("visit_records", lazy=True))
    sales = db.relationship("User", backref=db.backref("visit_records", lazy=True))

    @property
    def ownership(self) -> Ownership:
        sales = self.sales
        return Ownership(
            owner_id=self.sales_id,
            owner_department=sales.department if sales is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "sales_id": self.sales_id,
            "sales_name": self.sales.real_name if self.sales else None,
            "visit_date": self.visit_date.isoformat() if self.visit_date else None,
            "visit_time": self.visit_time.isoformat() if self.visit_time else None,
            "duration_minutes": self.duration_minutes,
            "visit_type": self.visit_type.value,
            "status": self.status.value,
            "intent_level": self.intent_level.value if self.intent_level else None,
            "location": self.location,
            "business_items": self.business_items,
            "pain_points": self.pain_points,
            "competitors": self.competitors,
            "budget_range": self.budget_range,
            "decision_timeline": self.decision_timeline,
            "next_step": self.next_step,
            "follow_up_date": self.follow_up_date.isoformat() if self.follow_up_date else None,
            "notes": self.notes,
            "materials_left": self.materials_left,
            "wechat_added": self.wechat_added,
            "rating": self.rating,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
