# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import (
    current_principal,
    require_auth,
    require_branch_access,
    require_roles,
    require_scope,
)
from ..errors import success_response
from ..permissions import CUSTOMER_DELETE_ROLES, CUSTOMER_ROLES, READ_CUSTOMERS, WRITE_CUSTOMERS
from ..services import customer_service
from ..validation import json_object, parse_optional_int


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_roles(CUSTOMER_ROLES)
@require_scope(READ_CUSTOMERS)
def list_customers():
    """
    Query params: branch_id, status, search, page, limit (alias page_size).

    Staff are always scoped to their own branch; branch_id is ignored for them.
    """
    page, page_size = customer_service.parse_pagination_args(request.args)
    result = customer_service.search_customers(
        current_principal(),
        branch_id=parse_optional_int(request.args.get("branch_id"), "branch_id"),
        status=request.args.get("status"),
        search=request.args.get("search"),
        page=page,
        page_size=page_size,
    )
    return success_response(result)


@customers_bp.get("/<id:customer_id>")
@require_auth
@require_roles(CUSTOMER_ROLES)
@require_scope(READ_CUSTOMERS)
def get_customer(customer_id: int):
    customer = customer_service.get_customer(current_principal(), customer_id)
    return success_response(customer.to_dict())


@customers_bp.post("")
@require_auth
@require_roles(CUSTOMER_ROLES)
@require_scope(WRITE_CUSTOMERS)
@require_branch_access
def create_customer():
    customer = customer_service.create_customer(current_principal(), json_object(request))
    return success_response(customer.to_dict(), "Customer created", 201)


@customers_bp.put("/<id:customer_id>")
@require_auth
@require_roles(CUSTOMER_ROLES)
@require_scope(WRITE_CUSTOMERS)
def update_customer(customer_id: int):
    customer = customer_service.update_customer(current_principal(), customer_id, json_object(request))
    return success_response(customer.to_dict(), "Customer updated")


@customers_bp.delete("/<id:customer_id>")
@require_auth
@require_roles(CUSTOMER_DELETE_ROLES)
@require_scope(WRITE_CUSTOMERS)
def delete_customer(customer_id: int):
    customer_service.delete_customer(current_principal(), customer_id)
    return success_response(message="Customer deleted")
