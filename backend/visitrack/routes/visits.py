# Overview: Flask API routes for visit record operations; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_auth
from ..models import VisitRecord, VisitStatus
from ..services import visit_service
from ..time_utils import parse_iso_date
from ..validation import ModelValidationPolicy, ValidationError, parse_id_list, validate_payload

VISIT_POLICY = ModelValidationPolicy(
    writable_fields={
        "customer_id", "visit_date", "visit_time", "duration_minutes",
        "visit_type", "status", "intent_level", "location", "business_items",
        "pain_points", "competitors", "budget_range", "decision_timeline",
        "next_step", "follow_up_date", "notes", "materials_left",
        "wechat_added", "rating",
    },
    required_on_create={"customer_id", "visit_date"},
)

visits_bp = Blueprint("visits", __name__, url_prefix="/api/visits")


def _date_arg(name: str):
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date (YYYY-MM-DD)")


@visits_bp.get("")
@require_auth
def list_visits():
    """
    List visit records visible to the caller.

    Query params: customer_id, status, date_from, date_to, page, per_page
    """
    status = request.args.get("status")
    if status:
        try:
            status = VisitStatus[status.strip().upper()]
        except KeyError:
            raise ValidationError("Invalid status")

    result = visit_service.list_visits(
        g.identity,
        customer_id=request.args.get("customer_id", type=int),
        status=status or None,
        date_from=_date_arg("date_from"),
        date_to=_date_arg("date_to"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result, 200


@visits_bp.get("/<int:visit_id>")
@require_auth
def get_visit(visit_id: int):
    return visit_service.get_visit(visit_id, g.identity).to_dict(), 200


@visits_bp.post("")
@require_auth
def create_visit():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=VisitRecord, payload=payload, policy=VISIT_POLICY, partial=False)
    visit = visit_service.create_visit(patch=patch, identity=g.identity)
    return visit.to_dict(), 201


@visits_bp.put("/<int:visit_id>")
@require_auth
def update_visit(visit_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=VisitRecord, payload=payload, policy=VISIT_POLICY, partial=True)
    visit = visit_service.update_visit(visit_id, patch=patch, identity=g.identity)
    return visit.to_dict(), 200


@visits_bp.put("/<int:visit_id>/status")
@require_auth
def update_visit_status(visit_id: int):
    """Body: {"status": "COMPLETED"}"""
    payload = request.get_json(silent=True) or {}
    visit = visit_service.update_visit_status(visit_id, payload.get("status"), g.identity)
    return visit.to_dict(), 200


@visits_bp.post("/<int:visit_id>/copy")
@require_auth
def copy_visit(visit_id: int):
    """Body (optional): {"visit_date": "YYYY-MM-DD"}"""
    payload = request.get_json(silent=True) or {}
    try:
        visit_date = parse_iso_date(payload.get("visit_date"))
    except (ValueError, AttributeError):
        raise ValidationError("visit_date must be an ISO-8601 date (YYYY-MM-DD)")
    visit = visit_service.copy_visit(visit_id, g.identity, visit_date=visit_date)
    return visit.to_dict(), 201


@visits_bp.delete("/<int:visit_id>")
@require_auth
def delete_visit(visit_id: int):
    visit_service.delete_visit(visit_id, g.identity)
    return {"ok": True}, 200


@visits_bp.post("/batch-delete")
@require_auth
def batch_delete_visits():
    """Body: {"ids": [1, 2, 3]}. Administrators and managers only."""
    payload = request.get_json(silent=True) or {}
    ids = parse_id_list(payload.get("ids"))
    deleted = visit_service.batch_delete_visits(ids, g.identity)
    return {"ok": True, "deleted": deleted}, 200
