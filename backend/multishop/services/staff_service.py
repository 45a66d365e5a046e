from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Staff
from ..permissions import DEFAULT_ROLES, PrincipalKind, parse_role, role_values
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import hash_password, username_taken, validate_username
from .concurrency import commit_or_conflict, lock_for_update, run_with_retry


STAFF_POLICY = ModelValidationPolicy(
    writable_fields={"branch_id", "username", "full_name", "role", "is_active"},
    required_on_create={"branch_id", "username", "full_name"},
    escaped_fields={"full_name"},
)


class StaffError(ValidationError):
    """Raised when staff operations fail validation."""
    pass


def _resolve_role(value) -> str:
    role = parse_role(PrincipalKind.STAFF, value)
    if role is None:
        raise StaffError(f"role must be one of: {', '.join(role_values(PrincipalKind.STAFF))}")
    return role.value


def _require_branch(branch_id: int) -> None:
    if db.session.get(Branch, branch_id) is None:
        raise StaffError("Branch not found")


def list_staff(branch_id: int | None = None) -> list[Staff]:
    query = db.session.query(Staff)
    if branch_id is not None:
        query = query.filter(Staff.branch_id == branch_id)
    return query.order_by(Staff.id.asc()).all()


def get_staff(staff_id: int) -> Staff:
    staff = db.session.get(Staff, staff_id)
    if staff is None:
        raise NotFoundError("Staff not found")
    return staff


def create_staff(payload: dict) -> Staff:
    """
    Create a branch staff account.

    Password must meet strength requirements; username must be unique across
    staff and management users.
    """
    def _op():
        data = dict(payload or {})
        password = data.pop("password", None)
        if not password:
            raise StaffError("password is required")

        patch = validate_payload(model=Staff, payload=data, policy=STAFF_POLICY, partial=False)
        patch["username"] = validate_username(patch["username"])
        if username_taken(patch["username"]):
            raise ConflictError("Username already exists")

        _require_branch(patch["branch_id"])
        patch["role"] = _resolve_role(patch.get("role") or DEFAULT_ROLES[PrincipalKind.STAFF].value)

        staff = Staff(password_hash=hash_password(password), **patch)
        db.session.add(staff)
        commit_or_conflict("Username already exists")
        return staff

    return run_with_retry(_op)


def update_staff(staff_id: int, payload: dict) -> Staff:
    def _op():
        staff = lock_for_update(db.session.query(Staff).filter_by(id=staff_id)).first()
        if not staff:
            raise NotFoundError("Staff not found")

        data = dict(payload or {})
        password = data.pop("password", None)
        patch = validate_payload(model=Staff, payload=data, policy=STAFF_POLICY, partial=True)

        if "username" in patch:
            patch["username"] = validate_username(patch["username"])
            if username_taken(patch["username"], exclude_staff_id=staff.id):
                raise ConflictError("Username already exists")
        if "branch_id" in patch:
            _require_branch(patch["branch_id"])
        if "role" in patch:
            patch["role"] = _resolve_role(patch["role"])

        for key, value in patch.items():
            setattr(staff, key, value)
        if password:
            staff.password_hash = hash_password(password)

        commit_or_conflict("Username already exists")
        return staff

    return run_with_retry(_op)


def delete_staff(staff_id: int) -> None:
    staff = get_staff(staff_id)
    db.session.delete(staff)
    db.session.commit()
