from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import ApiKey, User
from ..permissions import DEFAULT_ROLES, PrincipalKind, parse_role, role_values
from ..validation import ModelValidationPolicy, validate_payload
from .auth_service import hash_password, username_taken, validate_username
from .concurrency import commit_or_conflict, lock_for_update, run_with_retry


USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "full_name", "role", "is_active"},
    required_on_create={"username", "full_name"},
    escaped_fields={"full_name"},
)


class UserError(ValidationError):
    """Raised when management user operations fail validation."""
    pass


def _resolve_role(value) -> str:
    role = parse_role(PrincipalKind.MANAGEMENT, value)
    if role is None:
        raise UserError(f"role must be one of: {', '.join(role_values(PrincipalKind.MANAGEMENT))}")
    return role.value


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.id.asc()).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def create_user(payload: dict) -> User:
    """
    Create a management user.

    Password must meet strength requirements; username must be unique across
    management users and staff.
    """
    def _op():
        data = dict(payload or {})
        password = data.pop("password", None)
        if not password:
            raise UserError("password is required")

        patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=False)
        patch["username"] = validate_username(patch["username"])
        if username_taken(patch["username"]):
            raise ConflictError("Username already exists")
        patch["role"] = _resolve_role(patch.get("role") or DEFAULT_ROLES[PrincipalKind.MANAGEMENT].value)

        user = User(password_hash=hash_password(password), **patch)
        db.session.add(user)
        commit_or_conflict("Username already exists")
        return user

    return run_with_retry(_op)


def update_user(user_id: int, payload: dict) -> User:
    def _op():
        user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
        if not user:
            raise NotFoundError("User not found")

        data = dict(payload or {})
        password = data.pop("password", None)
        patch = validate_payload(model=User, payload=data, policy=USER_POLICY, partial=True)

        if "username" in patch:
            patch["username"] = validate_username(patch["username"])
            if username_taken(patch["username"], exclude_user_id=user.id):
                raise ConflictError("Username already exists")
        if "role" in patch:
            patch["role"] = _resolve_role(patch["role"])

        for key, value in patch.items():
            setattr(user, key, value)
        if password:
            user.password_hash = hash_password(password)

        commit_or_conflict("Username already exists")
        return user

    return run_with_retry(_op)


def delete_user(user_id: int, *, acting_user_id: int) -> None:
    """
    Delete a management user.

    Users cannot delete themselves. Users that own API keys (active or
    revoked) cannot be deleted, since keys are kept for audit.
    """
    if user_id == acting_user_id:
        raise ValidationError("You cannot delete your own account")

    user = get_user(user_id)
    key_count = db.session.query(ApiKey.id).filter(ApiKey.user_id == user.id).count()
    if key_count:
        raise ConflictError("Cannot delete a user that owns API keys; deactivate the user instead")

    db.session.delete(user)
    db.session.commit()
