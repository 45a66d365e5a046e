# Overview: Service-layer operations for API keys; issuance, lookup and revocation.

"""
API Key Service (secondary bearer credential)

Keys look like "sk_" + 64 hex characters. The plaintext is returned once at
creation; the database stores only its SHA-256 hash and a short display
prefix. Lookup hashes the presented key and compares hashes.

SECURITY FEATURES:
- Cryptographically secure random keys (32 bytes)
- SHA-256 is sufficient for high-entropy inputs (unlike passwords)
- Inactive or expired keys are rejected, as are keys whose owner is inactive
- Revocation is a flag flip; rows are never deleted

last_used_at is updated best-effort. With API_KEY_TOUCH_ASYNC the write runs
on a small worker pool; its failure is logged and never reaches the request.
"""

from __future__ import annotations

import hashlib
import secrets
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import ApiKey, User
from ..permissions import PrincipalKind, is_known_scope, parse_role
from ..principal import AuthMethod, Principal
from ..time_utils import utcnow
from ..validation import parse_optional_int
from .token_service import AuthError


KEY_PREFIX = "sk_"
DISPLAY_PREFIX_LENGTH = len(KEY_PREFIX) + 8
MAX_EXPIRES_IN_DAYS = 3650

_touch_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="api-key-touch")


def generate_key() -> str:
    """Return a new plaintext key: 'sk_' + 64 hex characters."""
    return KEY_PREFIX + secrets.token_hex(32)


def hash_key(key: str) -> str:
    return hashlib.sha256(key.encode('utf-8')).hexdigest()


def _validate_scopes(scopes) -> list[str]:
    if not isinstance(scopes, (list, tuple)) or not scopes:
        raise ValidationError("scopes must be a non-empty list")
    cleaned = []
    for scope in scopes:
        if not is_known_scope(scope):
            raise ValidationError(f"Unknown scope: {scope}")
        if scope not in cleaned:
            cleaned.append(scope)
    return cleaned


def create_api_key(
    user_id: int,
    name: str,
    scopes,
    expires_in_days=None,
) -> tuple[ApiKey, str]:
    """
    Create a key for a management user.

    Returns (api_key_record, plaintext_key). The plaintext is not recoverable
    afterwards.
    """
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        raise NotFoundError("User not found")

    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required")
    name = name.strip()
    if len(name) > 120:
        raise ValidationError("name exceeds max length 120")

    cleaned_scopes = _validate_scopes(scopes)

    days = parse_optional_int(expires_in_days, "expires_in_days")
    if days is not None and not (1 <= days <= MAX_EXPIRES_IN_DAYS):
        raise ValidationError(f"expires_in_days must be between 1 and {MAX_EXPIRES_IN_DAYS}")

    plaintext = generate_key()
    api_key = ApiKey(
        user_id=user.id,
        name=name,
        key_prefix=plaintext[:DISPLAY_PREFIX_LENGTH],
        key_hash=hash_key(plaintext),
        scopes=cleaned_scopes,
        expires_at=utcnow() + timedelta(days=days) if days is not None else None,
        is_active=True,
    )
    db.session.add(api_key)
    db.session.commit()

    current_app.logger.info("API key %s created for user %s", api_key.key_prefix, user.username)
    return api_key, plaintext


def list_api_keys(user_id: int | None = None) -> list[ApiKey]:
    query = db.session.query(ApiKey)
    if user_id is not None:
        query = query.filter(ApiKey.user_id == user_id)
    return query.order_by(ApiKey.id.desc()).all()


def revoke_api_key(key_id: int, *, user_id: int | None = None) -> ApiKey:
    """
    Deactivate a key. When user_id is given, only that user's keys are
    visible; anything else is NotFound.
    """
    api_key = db.session.get(ApiKey, key_id)
    if api_key is None or (user_id is not None and api_key.user_id != user_id):
        raise NotFoundError("API key not found")

    if api_key.is_active:
        api_key.is_active = False
        api_key.revoked_at = utcnow()
        db.session.commit()
    return api_key


def find_api_key_by_hash(key_hash: str) -> ApiKey | None:
    return db.session.query(ApiKey).filter(ApiKey.key_hash == key_hash).first()


def authenticate_api_key(raw_key: str | None) -> Principal | AuthError:
    """
    Resolve a presented key to a Principal carrying the key's scopes.

    Returns AuthError.MISSING if nothing was presented, AuthError.INVALID for
    unknown, inactive or expired keys and for inactive owners.
    """
    if raw_key is None or not raw_key.strip():
        return AuthError.MISSING
    raw_key = raw_key.strip()
    if not raw_key.startswith(KEY_PREFIX):
        return AuthError.INVALID

    api_key = find_api_key_by_hash(hash_key(raw_key))
    if api_key is None or not api_key.is_active:
        return AuthError.INVALID

    now = utcnow()
    if api_key.expires_at is not None and api_key.expires_at <= now:
        return AuthError.INVALID

    owner = api_key.user
    if owner is None or not owner.is_active:
        return AuthError.INVALID

    role = parse_role(PrincipalKind.MANAGEMENT, owner.role)
    if role is None:
        return AuthError.INVALID

    touch_last_used(api_key.id)

    return Principal(
        id=owner.id,
        username=owner.username,
        kind=PrincipalKind.MANAGEMENT,
        role=role,
        scopes=tuple(api_key.scopes or ()),
        auth_method=AuthMethod.API_KEY,
        api_key_id=api_key.id,
    )


def _write_last_used(key_id: int, used_at) -> None:
    try:
        db.session.query(ApiKey).filter(ApiKey.id == key_id).update(
            {ApiKey.last_used_at: used_at},
            synchronize_session=False,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to update last_used_at for API key %s", key_id)


def _touch_in_background(app, key_id: int, used_at) -> None:
    with app.app_context():
        _write_last_used(key_id, used_at)


def touch_last_used(key_id: int) -> None:
    """Record key usage without blocking or failing the caller."""
    used_at = utcnow()
    if current_app.config.get("API_KEY_TOUCH_ASYNC", True):
        app = current_app._get_current_object()
        try:
            _touch_executor.submit(_touch_in_background, app, key_id, used_at)
        except RuntimeError:
            current_app.logger.warning("API key touch executor unavailable; skipping last_used_at update")
        return
    _write_last_used(key_id, used_at)
