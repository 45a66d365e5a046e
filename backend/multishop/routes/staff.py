# Overview: Flask API routes for branch staff accounts; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import require_auth, require_roles, require_scope, require_token
from ..errors import success_response
from ..permissions import BRANCH_ADMIN_ROLES, READ_STAFF
from ..services import staff_service
from ..validation import json_object, parse_optional_int


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.get("")
@require_auth
@require_roles(BRANCH_ADMIN_ROLES)
@require_scope(READ_STAFF)
def list_staff():
    branch_id = parse_optional_int(request.args.get("branch_id"), "branch_id")
    staff = staff_service.list_staff(branch_id)
    return success_response([member.to_dict() for member in staff])


@staff_bp.get("/<id:staff_id>")
@require_auth
@require_roles(BRANCH_ADMIN_ROLES)
@require_scope(READ_STAFF)
def get_staff(staff_id: int):
    return success_response(staff_service.get_staff(staff_id).to_dict())


# Writes are token-only: there is no API key scope for staff administration.

@staff_bp.post("")
@require_token
@require_roles(BRANCH_ADMIN_ROLES)
def create_staff():
    staff = staff_service.create_staff(json_object(request))
    return success_response(staff.to_dict(), "Staff created", 201)


@staff_bp.put("/<id:staff_id>")
@require_token
@require_roles(BRANCH_ADMIN_ROLES)
def update_staff(staff_id: int):
    staff = staff_service.update_staff(staff_id, json_object(request))
    return success_response(staff.to_dict(), "Staff updated")


@staff_bp.delete("/<id:staff_id>")
@require_token
@require_roles(BRANCH_ADMIN_ROLES)
def delete_staff(staff_id: int):
    staff_service.delete_staff(staff_id)
    return success_response(message="Staff deleted")
