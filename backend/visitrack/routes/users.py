# Overview: Flask API routes for user accounts; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..decorators import require_admin, require_auth
from ..services import user_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
def list_users():
    """Administrators see all accounts, managers their department, sales themselves."""
    result = user_service.list_users(
        g.identity,
        keyword=request.args.get("keyword"),
        role=request.args.get("role") or None,
        status=request.args.get("status") or None,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )
    return result, 200


@users_bp.get("/<int:user_id>")
@require_auth
def get_user(user_id: int):
    return user_service.get_user(user_id, g.identity).to_dict(), 200


@users_bp.post("")
@require_auth
@require_admin
def create_user():
    """Body: {username, password, real_name, role?, department?, email?, phone?}"""
    payload = request.get_json(silent=True) or {}
    user = user_service.create_user(
        username=payload.get("username"),
        password=payload.get("password"),
        real_name=payload.get("real_name"),
        role=payload.get("role") or "SALES",
        department=payload.get("department"),
        email=payload.get("email"),
        phone=payload.get("phone"),
        identity=g.identity,
    )
    return user.to_dict(), 201


@users_bp.put("/<int:user_id>")
@require_auth
def update_user(user_id: int):
    """Own profile fields for anyone; role, department and other accounts for administrators."""
    payload = request.get_json(silent=True) or {}
    user = user_service.update_user(user_id, payload, g.identity)
    return user.to_dict(), 200


@users_bp.put("/<int:user_id>/status")
@require_auth
@require_admin
def set_user_status(user_id: int):
    payload = request.get_json(silent=True) or {}
    user = user_service.set_user_status(user_id, payload.get("status"), g.identity)
    return user.to_dict(), 200


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_admin
def reset_password(user_id: int):
    payload = request.get_json(silent=True) or {}
    user_service.reset_password(user_id, payload.get("new_password"), g.identity)
    return {"ok": True}, 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_admin
def delete_user(user_id: int):
    user_service.delete_user(user_id, g.identity)
    return {"ok": True}, 200
