# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /login    username + password -> access token, refresh token, principal
- POST /refresh  refresh token -> new access token (refresh token not rotated)
- POST /logout   stateless acknowledgement; clients discard their tokens
- GET  /me       the current principal
"""

from flask import Blueprint, request

from ..decorators import client_context, current_principal, require_auth, require_token
from ..errors import error_response, success_response
from ..extensions import db
from ..models import Staff, User
from ..services import access_service, auth_service, token_service
from ..services.token_service import AuthError
from ..validation import json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate a management user or staff member.

    Management users are checked first, then staff.
    """
    data = json_object(request)
    username = data.get("username")
    password = data.get("password")

    if not isinstance(username, str) or not isinstance(password, str) or not username.strip() or not password:
        return error_response("username and password required", 400, {"code": "VALIDATION_ERROR"})

    username = username.strip()
    principal = auth_service.authenticate(username, password)

    if principal is None:
        access_service.log_security_event(
            None,
            event_type="LOGIN_FAILED",
            success=False,
            reason="Invalid credentials",
            username=username[:64],
            **client_context(),
        )
        return error_response("Invalid credentials", 401, {"code": "INVALID_CREDENTIAL"})

    access_service.log_security_event(
        principal,
        event_type="LOGIN_SUCCESS",
        success=True,
        branch_id=principal.branch_id,
        **client_context(),
    )

    data = token_service.issue_pair(principal)
    data["principal"] = principal.summary()
    return success_response(data, "Login successful")


@auth_bp.post("/refresh")
def refresh_route():
    """
    Exchange a refresh token for a new access token.

    400 if no refresh token was sent, 403 if it is invalid or expired.
    """
    data = json_object(request)
    refresh_token = data.get("refresh_token") or data.get("refreshToken")
    if refresh_token is not None and not isinstance(refresh_token, str):
        return error_response("Invalid or expired refresh token", 403, {"code": "INVALID_CREDENTIAL"})

    result = token_service.refresh_access(refresh_token)
    if result is AuthError.MISSING:
        return error_response("Refresh token required", 400, {"code": "VALIDATION_ERROR"})
    if result is AuthError.INVALID:
        return error_response("Invalid or expired refresh token", 403, {"code": "INVALID_CREDENTIAL"})

    principal, access_token = result
    access_service.log_security_event(
        principal,
        event_type="TOKEN_REFRESHED",
        success=True,
        branch_id=principal.branch_id,
        **client_context(),
    )
    return success_response({
        "access_token": access_token,
        "token_type": "Bearer",
    }, "Token refreshed")


@auth_bp.post("/logout")
@require_token
def logout_route():
    # Tokens are stateless; there is nothing to revoke server-side.
    return success_response(message="Logged out")


@auth_bp.get("/me")
@require_auth
def me_route():
    principal = current_principal()
    data = principal.summary()

    if principal.is_staff:
        account = db.session.get(Staff, principal.id)
    else:
        account = db.session.get(User, principal.id)
    if account is not None:
        data["full_name"] = account.full_name
        if principal.is_staff and account.branch is not None:
            data["branch_name"] = account.branch.name

    return success_response(data)
