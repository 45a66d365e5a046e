# Overview: Service-layer operations for signed access/refresh tokens.

"""
Stateless Token Service

Tokens are HS256 JWTs carrying exactly the fields needed to rebuild a
Principal without a database round-trip: {id, username, role, kind,
branch_id?}. Nothing is stored server-side; validity is signature + expiry.

SECURITY FEATURES:
- Access and refresh tokens are signed with DIFFERENT secrets, so a token of
  one kind never verifies as the other
- A "type" claim is checked as well, in case both secrets are misconfigured
  to the same value
- verify() never raises for expected failures; it returns AuthError
- No revocation list; exposure is bounded by the short access TTL
"""

from __future__ import annotations

import calendar
from datetime import datetime
from enum import Enum

from flask import current_app
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from ..principal import Principal
from ..time_utils import utcnow


class TokenKind(Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class AuthError(Enum):
    """Typed verification failure."""
    MISSING = "missing"
    INVALID = "invalid"


def _secret_for(kind: TokenKind) -> str:
    if kind is TokenKind.ACCESS:
        return current_app.config["JWT_ACCESS_SECRET"]
    return current_app.config["JWT_REFRESH_SECRET"]


def _ttl_for(kind: TokenKind):
    if kind is TokenKind.ACCESS:
        return current_app.config["JWT_ACCESS_EXPIRES"]
    return current_app.config["JWT_REFRESH_EXPIRES"]


def _timestamp(dt: datetime) -> int:
    # dt is UTC-naive (see time_utils.utcnow)
    return calendar.timegm(dt.utctimetuple())


def issue(principal: Principal, kind: TokenKind, *, now: datetime | None = None) -> str:
    """
    Sign a token of the given kind for principal.

    Deterministic for a given principal, kind, secret and clock. `now` lets
    callers (and tests) pin the clock.
    """
    issued_at = now or utcnow()
    claims = principal.to_claims()
    claims["type"] = kind.value
    claims["iat"] = _timestamp(issued_at)
    claims["exp"] = _timestamp(issued_at + _ttl_for(kind))
    return jwt.encode(
        claims,
        _secret_for(kind),
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def verify(token: str | None, kind: TokenKind) -> Principal | AuthError:
    """
    Verify signature and expiry against the kind-specific secret.

    Returns:
        Principal on success
        AuthError.MISSING if no token was presented
        AuthError.INVALID for bad signature, bad format, expiry, wrong kind
    """
    if token is None or not str(token).strip():
        return AuthError.MISSING

    try:
        claims = jwt.decode(
            token.strip(),
            _secret_for(kind),
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except ExpiredSignatureError:
        current_app.logger.debug("Rejected expired %s token", kind.value)
        return AuthError.INVALID
    except JWTError as exc:
        current_app.logger.debug("Rejected %s token: %s", kind.value, exc)
        return AuthError.INVALID

    if claims.get("type") != kind.value:
        return AuthError.INVALID

    principal = Principal.from_claims(claims)
    if principal is None:
        return AuthError.INVALID
    return principal


def issue_pair(principal: Principal) -> dict:
    """Access + refresh tokens for a fresh login."""
    return {
        "access_token": issue(principal, TokenKind.ACCESS),
        "refresh_token": issue(principal, TokenKind.REFRESH),
        "token_type": "Bearer",
        "expires_in": int(_ttl_for(TokenKind.ACCESS).total_seconds()),
    }


def refresh_access(refresh_token: str | None) -> tuple[Principal, str] | AuthError:
    """
    Mint a new access token from a valid refresh token.

    The refresh token itself is not rotated; it stays valid until its own expiry.
    """
    result = verify(refresh_token, TokenKind.REFRESH)
    if isinstance(result, AuthError):
        return result
    return result, issue(result, TokenKind.ACCESS)
