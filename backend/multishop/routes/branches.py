# Overview: Flask API routes for branch operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import current_principal, require_auth, require_roles, require_scope
from ..errors import success_response
from ..permissions import ALL_ROLES, BRANCH_ADMIN_ROLES, READ_BRANCHES, WRITE_BRANCHES
from ..services import branch_service
from ..validation import json_object


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("")
@require_auth
@require_roles(ALL_ROLES)
@require_scope(READ_BRANCHES)
def list_branches():
    branches = branch_service.list_branches(current_principal())
    return success_response([branch.to_dict() for branch in branches])


@branches_bp.get("/<id:branch_id>")
@require_auth
@require_roles(ALL_ROLES)
@require_scope(READ_BRANCHES)
def get_branch(branch_id: int):
    # Other branches are 404 for staff, not 403
    branch = branch_service.get_branch(current_principal(), branch_id)
    return success_response(branch.to_dict())


@branches_bp.post("")
@require_auth
@require_roles(BRANCH_ADMIN_ROLES)
@require_scope(WRITE_BRANCHES)
def create_branch():
    branch = branch_service.create_branch(json_object(request))
    return success_response(branch.to_dict(), "Branch created", 201)


@branches_bp.put("/<id:branch_id>")
@require_auth
@require_roles(BRANCH_ADMIN_ROLES)
@require_scope(WRITE_BRANCHES)
def update_branch(branch_id: int):
    branch = branch_service.update_branch(branch_id, json_object(request))
    return success_response(branch.to_dict(), "Branch updated")


@branches_bp.delete("/<id:branch_id>")
@require_auth
@require_roles(BRANCH_ADMIN_ROLES)
@require_scope(WRITE_BRANCHES)
def delete_branch(branch_id: int):
    branch_service.delete_branch(branch_id)
    return success_response(message="Branch deleted")
