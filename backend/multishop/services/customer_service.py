# Overview: Service-layer operations for customers, including the branch-scoped search query.

"""
Customer Query Engine and customer CRUD.

SECURITY INVARIANTS:
1. Staff principals are always scoped to their own branch; a client-supplied
   branch_id is ignored for queries
2. Management principals are unscoped unless they ask for a branch
3. An out-of-scope customer is indistinguishable from a missing one (404)
4. The count query uses exactly the same filters as the page query
"""

from __future__ import annotations

import math

from markupsafe import escape
from sqlalchemy import or_
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Customer, CustomerStatus
from ..principal import Principal
from ..validation import (
    MAX_DB_INT,
    ModelValidationPolicy,
    normalize_email,
    parse_int,
    validate_payload,
)
from .concurrency import commit_or_conflict, lock_for_update, run_with_retry


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MIN_SEARCH_LENGTH = 3
MAX_SEARCH_LENGTH = 50

# Keeps the OFFSET of the last page inside a 64-bit integer
MAX_PAGE = MAX_DB_INT // MAX_PAGE_SIZE

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "branch_id",
        "full_name",
        "email",
        "phone_number",
        "code",
        "address",
        "registration_date",
        "status",
    },
    required_on_create={"full_name", "email", "registration_date"},
    escaped_fields={"full_name", "phone_number", "code", "address"},
)


def parse_status(value) -> str | None:
    """
    Normalize a status filter/value. None or blank means "not given".

    Matching is case-insensitive; anything other than Active/Inactive is a
    ValidationError.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("status must be one of: Active, Inactive")
    stripped = value.strip()
    if not stripped:
        return None
    for status in CustomerStatus:
        if status.value.lower() == stripped.lower():
            return status.value
    raise ValidationError("status must be one of: Active, Inactive")


def clamp_pagination(page, page_size) -> tuple[int, int]:
    """page is clamped to [1, MAX_PAGE]; page_size to [1, MAX_PAGE_SIZE]."""
    page = 1 if page is None else min(MAX_PAGE, max(1, page))
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(MAX_PAGE_SIZE, max(1, page_size))
    return page, page_size


def effective_branch_scope(principal: Principal, requested_branch_id: int | None) -> int | None:
    """
    Branch the query is restricted to; None means all branches.

    Staff are forced to their own branch regardless of what they ask for.
    """
    if principal.is_staff:
        if principal.branch_id is None:
            raise ForbiddenError("Account is not assigned to a branch")
        return principal.branch_id
    return requested_branch_id


def normalize_search(search: str | None) -> str | None:
    """
    Prepare a search term. Returns None when search should not apply.

    Terms shorter than MIN_SEARCH_LENGTH after trimming are ignored; longer
    ones are truncated to MAX_SEARCH_LENGTH.
    """
    if search is None:
        return None
    term = search.strip()
    if len(term) < MIN_SEARCH_LENGTH:
        return None
    return term[:MAX_SEARCH_LENGTH]


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _filtered_query(branch_scope: int | None, status: str | None, term: str | None):
    query = db.session.query(Customer)
    if branch_scope is not None:
        query = query.filter(Customer.branch_id == branch_scope)
    if status is not None:
        query = query.filter(Customer.status == status)
    if term is not None:
        # Free-text columns are stored HTML-escaped, email is stored as given
        text_pattern = _like_pattern(str(escape(term)))
        email_pattern = _like_pattern(term)
        query = query.filter(
            or_(
                Customer.full_name.ilike(text_pattern, escape="\\"),
                Customer.phone_number.ilike(text_pattern, escape="\\"),
                Customer.code.ilike(text_pattern, escape="\\"),
                Customer.address.ilike(text_pattern, escape="\\"),
                Customer.email.ilike(email_pattern, escape="\\"),
            )
        )
    return query


def search_customers(
    principal: Principal,
    *,
    branch_id: int | None = None,
    status: str | None = None,
    search: str | None = None,
    page: int | None = 1,
    page_size: int | None = DEFAULT_PAGE_SIZE,
) -> dict:
    """
    Filtered, paginated, branch-scoped customer listing.

    Returns {"items": [...], "pagination": {total, page, page_size, total_pages}}.
    Ordered by id descending (newest first).
    """
    branch_scope = effective_branch_scope(principal, branch_id)
    status = parse_status(status)
    term = normalize_search(search)
    page, page_size = clamp_pagination(page, page_size)

    base = _filtered_query(branch_scope, status, term)
    total = base.count()

    items = (
        base.options(joinedload(Customer.branch))
        .order_by(Customer.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    return {
        "items": [customer.to_dict() for customer in items],
        "pagination": {
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size) if total else 0,
        },
    }


def get_customer(principal: Principal, customer_id: int) -> Customer:
    """Fetch a customer visible to principal, else NotFoundError."""
    customer = db.session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    if principal.is_staff and customer.branch_id != principal.branch_id:
        raise NotFoundError("Customer not found")
    return customer


def _email_taken(email: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Customer.id).filter(Customer.email == email)
    if exclude_id is not None:
        query = query.filter(Customer.id != exclude_id)
    return query.first() is not None


def create_customer(principal: Principal, payload: dict) -> Customer:
    """
    Create a customer.

    Staff create in their own branch (branch_id may be omitted). Management
    must name an existing branch.
    """
    def _op():
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)

        if principal.is_staff:
            requested = patch.get("branch_id")
            if requested is not None and requested != principal.branch_id:
                raise ForbiddenError()
            patch["branch_id"] = effective_branch_scope(principal, None)
        elif patch.get("branch_id") is None:
            raise ValidationError("branch_id is required")

        if db.session.get(Branch, patch["branch_id"]) is None:
            raise ValidationError("Branch not found")

        patch["email"] = normalize_email(patch["email"])
        if _email_taken(patch["email"]):
            raise ConflictError("Email already exists")

        patch["status"] = parse_status(patch.get("status")) or CustomerStatus.ACTIVE.value

        customer = Customer(**patch)
        db.session.add(customer)
        commit_or_conflict("Email already exists")
        return customer

    return run_with_retry(_op)


def update_customer(principal: Principal, customer_id: int, payload: dict) -> Customer:
    def _op():
        customer = get_customer(principal, customer_id)
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer.id)).first()

        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)

        if "branch_id" in patch:
            if patch["branch_id"] != customer.branch_id:
                raise ValidationError("branch_id cannot be changed")
            patch.pop("branch_id")

        if "email" in patch:
            if patch["email"] is None:
                raise ValidationError("email cannot be null")
            patch["email"] = normalize_email(patch["email"])
            if _email_taken(patch["email"], exclude_id=customer.id):
                raise ConflictError("Email already exists")

        if "status" in patch:
            status = parse_status(patch["status"])
            if status is None:
                raise ValidationError("status must be one of: Active, Inactive")
            patch["status"] = status

        for key, value in patch.items():
            setattr(customer, key, value)

        commit_or_conflict("Email already exists")
        return customer

    return run_with_retry(_op)


def delete_customer(principal: Principal, customer_id: int) -> None:
    customer = get_customer(principal, customer_id)
    db.session.delete(customer)
    db.session.commit()


def parse_pagination_args(args) -> tuple[int, int]:
    """
    Read page/limit from query args. Non-numeric values are a
    ValidationError; numeric values are clamped.

    `page_size` is accepted as an alias of `limit`.
    """
    raw_page = args.get("page")
    raw_limit = args.get("limit", args.get("page_size"))
    page = parse_int(raw_page, "page") if raw_page not in (None, "") else 1
    page_size = parse_int(raw_limit, "limit") if raw_limit not in (None, "") else DEFAULT_PAGE_SIZE
    return clamp_pagination(page, page_size)
