from __future__ import annotations

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import Branch, Customer, Staff
from ..principal import Principal
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import commit_or_conflict, lock_for_update, run_with_retry


BRANCH_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "phone_number", "manager_name"},
    required_on_create={"name"},
    escaped_fields={"name", "address", "phone_number", "manager_name"},
)


def list_branches(principal: Principal) -> list[Branch]:
    query = db.session.query(Branch)
    if principal.is_staff:
        query = query.filter(Branch.id == principal.branch_id)
    return query.order_by(Branch.name.asc()).all()


def get_branch(principal: Principal, branch_id: int) -> Branch:
    """Staff can only see their own branch; anything else is NotFound."""
    if principal.is_staff and branch_id != principal.branch_id:
        raise NotFoundError("Branch not found")
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")
    return branch


def _name_taken(name: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Branch.id).filter(Branch.name == name)
    if exclude_id is not None:
        query = query.filter(Branch.id != exclude_id)
    return query.first() is not None


def create_branch(payload: dict) -> Branch:
    def _op():
        patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=False)
        if _name_taken(patch["name"]):
            raise ConflictError("Branch name already exists")

        branch = Branch(**patch)
        db.session.add(branch)
        commit_or_conflict("Branch name already exists")
        return branch

    return run_with_retry(_op)


def update_branch(branch_id: int, payload: dict) -> Branch:
    def _op():
        branch = lock_for_update(db.session.query(Branch).filter_by(id=branch_id)).first()
        if not branch:
            raise NotFoundError("Branch not found")

        patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=True)
        if "name" in patch and _name_taken(patch["name"], exclude_id=branch.id):
            raise ConflictError("Branch name already exists")

        for key, value in patch.items():
            setattr(branch, key, value)

        commit_or_conflict("Branch name already exists")
        return branch

    return run_with_retry(_op)


def delete_branch(branch_id: int) -> None:
    """
    Delete a branch with no dependents.

    Raises ConflictError while staff or customers still reference it.
    """
    branch = db.session.get(Branch, branch_id)
    if branch is None:
        raise NotFoundError("Branch not found")

    staff_count = db.session.query(Staff.id).filter(Staff.branch_id == branch_id).count()
    customer_count = db.session.query(Customer.id).filter(Customer.branch_id == branch_id).count()
    if staff_count or customer_count:
        raise ConflictError(
            "Cannot delete branch with existing staff or customers",
            details={"staff": staff_count, "customers": customer_count},
        )

    db.session.delete(branch)
    db.session.commit()
