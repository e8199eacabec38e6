# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

"""
Customer routes.

SECURITY: All routes require authentication. Visibility and write access are
decided by the access guard inside customer_service; denials surface as an
audited 403 via the app error handlers.
"""
from flask import Blueprint, g, request

from ..decorators import require_auth
from ..models import Customer, CustomerStatus
from ..services import customer_service
from ..validation import ModelValidationPolicy, ValidationError, parse_id_list, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "position", "title", "school_id", "department_id", "phone",
        "wechat", "email", "office_location", "research_direction",
        "influence_level", "decision_power", "status", "birthday", "notes",
    },
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers():
    """
    List customers visible to the caller.

    Query params:
    - keyword: matches name, phone or email
    - school_id / department_id: int
    - status: CustomerStatus name
    - page / per_page: optional pagination
    """
    status = request.args.get("status")
    if status:
        try:
            status = CustomerStatus[status.strip().upper()]
        except KeyError:
            raise ValidationError("Invalid status")

    result = customer_service.list_customers(
        g.identity,
        keyword=request.args.get("keyword"),
        school_id=request.args.get("school_id", type=int),
        department_id=request.args.get("department_id", type=int),
        status=status or None,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result, 200


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer(customer_id: int):
    return customer_service.get_customer(customer_id, g.identity).to_dict(), 200


@customers_bp.post("")
@require_auth
def create_customer():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    customer = customer_service.create_customer(patch=patch, identity=g.identity)
    return customer.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    customer = customer_service.update_customer(customer_id, patch=patch, identity=g.identity)
    return customer.to_dict(), 200


@customers_bp.delete("/<int:customer_id>")
@require_auth
def delete_customer(customer_id: int):
    customer_service.delete_customer(customer_id, g.identity)
    return {"ok": True}, 200


@customers_bp.post("/batch-delete")
@require_auth
def batch_delete_customers():
    """Body: {"ids": [1, 2, 3]}. Administrators and managers only."""
    payload = request.get_json(silent=True) or {}
    ids = parse_id_list(payload.get("ids"))
    deleted = customer_service.batch_delete_customers(ids, g.identity)
    return {"ok": True, "deleted": deleted}, 200


@customers_bp.post("/<int:customer_id>/transfer")
@require_auth
def transfer_customer(customer_id: int):
    """Body: {"owner_id": <user id>}. Administrators only."""
    payload = request.get_json(silent=True) or {}
    owner_id = payload.get("owner_id")
    if isinstance(owner_id, bool) or not isinstance(owner_id, int):
        raise ValidationError("owner_id must be an integer")
    customer = customer_service.transfer_customer(customer_id, owner_id, g.identity)
    return customer.to_dict(), 200
