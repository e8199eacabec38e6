# Overview: Flask API routes for schools and departments; parses input and returns JSON responses.

"""
School and department routes.

Both are shared reference data: any authenticated user may read them.
Department changes need a role that may mutate shared data; school changes
are administrator only.
"""
from flask import Blueprint, g, request

from ..decorators import require_admin, require_auth
from ..models import Department, School
from ..services import department_service, school_service
from ..validation import ModelValidationPolicy, parse_id_list, validate_payload

SCHOOL_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "province", "city", "school_type", "contact_phone", "website"},
    required_on_create={"name"},
)

DEPARTMENT_POLICY = ModelValidationPolicy(
    writable_fields={"school_id", "name", "contact_phone", "address", "description"},
    required_on_create={"school_id", "name"},
)

schools_bp = Blueprint("schools", __name__, url_prefix="/api/schools")
departments_bp = Blueprint("departments", __name__, url_prefix="/api/departments")


@schools_bp.get("")
@require_auth
def list_schools():
    result = school_service.list_schools(
        g.identity,
        keyword=request.args.get("keyword"),
        province=request.args.get("province"),
        city=request.args.get("city"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result, 200


@schools_bp.get("/<int:school_id>")
@require_auth
def get_school(school_id: int):
    return school_service.get_school(school_id, g.identity).to_dict(), 200


@schools_bp.get("/<int:school_id>/tree")
@require_auth
def get_school_tree(school_id: int):
    return school_service.get_school_tree(school_id, g.identity), 200


@schools_bp.post("")
@require_auth
@require_admin
def create_school():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=School, payload=payload, policy=SCHOOL_POLICY, partial=False)
    return school_service.create_school(patch=patch, identity=g.identity).to_dict(), 201


@schools_bp.put("/<int:school_id>")
@require_auth
@require_admin
def update_school(school_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=School, payload=payload, policy=SCHOOL_POLICY, partial=True)
    return school_service.update_school(school_id, patch=patch, identity=g.identity).to_dict(), 200


@schools_bp.delete("/<int:school_id>")
@require_auth
@require_admin
def delete_school(school_id: int):
    school_service.delete_school(school_id, g.identity)
    return {"ok": True}, 200


@departments_bp.get("")
@require_auth
def list_departments():
    departments = department_service.list_departments(
        g.identity, school_id=request.args.get("school_id", type=int)
    )
    return {"items": [d.to_dict() for d in departments], "count": len(departments)}, 200


@departments_bp.get("/<int:department_id>")
@require_auth
def get_department(department_id: int):
    return department_service.get_department(department_id, g.identity).to_dict(), 200


@departments_bp.post("")
@require_auth
def create_department():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Department, payload=payload, policy=DEPARTMENT_POLICY, partial=False)
    return department_service.create_department(patch=patch, identity=g.identity).to_dict(), 201


@departments_bp.put("/<int:department_id>")
@require_auth
def update_department(department_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Department, payload=payload, policy=DEPARTMENT_POLICY, partial=True)
    department = department_service.update_department(department_id, patch=patch, identity=g.identity)
    return department.to_dict(), 200


@departments_bp.delete("/<int:department_id>")
@require_auth
def delete_department(department_id: int):
    department_service.delete_department(department_id, g.identity)
    return {"ok": True}, 200


@departments_bp.post("/batch-delete")
@require_auth
def batch_delete_departments():
    payload = request.get_json(silent=True) or {}
    ids = parse_id_list(payload.get("ids"))
    deleted = department_service.batch_delete_departments(ids, g.identity)
    return {"ok": True, "deleted": deleted}, 200
