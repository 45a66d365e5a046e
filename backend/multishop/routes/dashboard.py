# Overview: Flask API routes for dashboard aggregates.

from flask import Blueprint, request

from ..decorators import current_principal, require_auth, require_roles, require_scope
from ..errors import success_response
from ..permissions import ALL_MANAGEMENT_ROLES, ALL_ROLES, READ_DASHBOARD
from ..services import dashboard_service
from ..validation import parse_optional_int


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_roles(ALL_ROLES)
@require_scope(READ_DASHBOARD)
def stats():
    branch_id = parse_optional_int(request.args.get("branch_id"), "branch_id")
    return success_response(dashboard_service.get_stats(current_principal(), branch_id))


@dashboard_bp.get("/branch-stats")
@require_auth
@require_roles(ALL_MANAGEMENT_ROLES)
@require_scope(READ_DASHBOARD)
def branch_stats():
    return success_response(dashboard_service.get_branch_stats())


@dashboard_bp.get("/recent-customers")
@require_auth
@require_roles(ALL_ROLES)
@require_scope(READ_DASHBOARD)
def recent_customers():
    limit = parse_optional_int(request.args.get("limit"), "limit")
    branch_id = parse_optional_int(request.args.get("branch_id"), "branch_id")
    return success_response(
        dashboard_service.get_recent_customers(current_principal(), limit, branch_id)
    )


@dashboard_bp.get("/customer-trends")
@require_auth
@require_roles(ALL_MANAGEMENT_ROLES)
@require_scope(READ_DASHBOARD)
def customer_trends():
    branch_id = parse_optional_int(request.args.get("branch_id"), "branch_id")
    return success_response(dashboard_service.get_customer_trends(branch_id))
