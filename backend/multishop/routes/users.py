# Overview: Flask API routes for management user accounts; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import current_principal, require_roles, require_token
from ..errors import success_response
from ..permissions import USER_ADMIN_ROLES
from ..services import user_service
from ..validation import json_object


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_token
@require_roles(USER_ADMIN_ROLES)
def list_users():
    return success_response([user.to_dict() for user in user_service.list_users()])


@users_bp.get("/<id:user_id>")
@require_token
@require_roles(USER_ADMIN_ROLES)
def get_user(user_id: int):
    return success_response(user_service.get_user(user_id).to_dict())


@users_bp.post("")
@require_token
@require_roles(USER_ADMIN_ROLES)
def create_user():
    user = user_service.create_user(json_object(request))
    return success_response(user.to_dict(), "User created", 201)


@users_bp.put("/<id:user_id>")
@require_token
@require_roles(USER_ADMIN_ROLES)
def update_user(user_id: int):
    user = user_service.update_user(user_id, json_object(request))
    return success_response(user.to_dict(), "User updated")


@users_bp.delete("/<id:user_id>")
@require_token
@require_roles(USER_ADMIN_ROLES)
def delete_user(user_id: int):
    user_service.delete_user(user_id, acting_user_id=current_principal().id)
    return success_response(message="User deleted")
