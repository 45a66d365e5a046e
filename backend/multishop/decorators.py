# Overview: Request authentication and authorization decorators for API routes.

from functools import wraps
from flask import request, g, current_app

from .errors import error_response
from .principal import Principal
from .services import access_service, api_key_service, token_service
from .services.access_service import AccessDecision
from .services.token_service import AuthError, TokenKind
from .validation import parse_optional_int


def current_principal() -> Principal | None:
    return getattr(g, "principal", None)


def client_context() -> dict:
    return {
        "resource": request.path,
        "action": request.method,
        "ip_address": request.remote_addr,
        "user_agent": request.headers.get("User-Agent"),
    }


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def _presented_api_key() -> str | None:
    """X-API-Key header, or a bearer credential that looks like an API key."""
    header_key = request.headers.get("X-API-Key")
    if header_key:
        return header_key.strip()
    bearer = _bearer_token()
    if bearer and bearer.startswith(api_key_service.KEY_PREFIX):
        return bearer
    return None


def _authenticate_token():
    result = token_service.verify(_bearer_token(), TokenKind.ACCESS)
    if result is AuthError.MISSING:
        return None, error_response("Authentication required", 401, {"code": "UNAUTHENTICATED"})
    if result is AuthError.INVALID:
        return None, error_response("Invalid or expired token", 401, {"code": "INVALID_CREDENTIAL"})
    return result, None


def _authenticate_api_key(raw_key: str):
    result = api_key_service.authenticate_api_key(raw_key)
    if isinstance(result, AuthError):
        access_service.log_security_event(
            None,
            event_type="API_KEY_REJECTED",
            success=False,
            reason=f"API key {result.value}",
            **client_context(),
        )
        return None, error_response("Invalid or expired API key", 401, {"code": "INVALID_CREDENTIAL"})
    return result, None


def require_auth(f):
    """
    Require a signed access token or an API key.

    Sets g.principal. API key principals carry scopes, which activates
    @require_scope checks further down the stack.

    Returns 401 if:
    - No credential presented
    - Invalid or expired token
    - Unknown, revoked or expired API key
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw_key = _presented_api_key()
        if raw_key is not None:
            principal, failure = _authenticate_api_key(raw_key)
        else:
            principal, failure = _authenticate_token()
        if failure is not None:
            return failure

        g.principal = principal
        return f(*args, **kwargs)

    return decorated_function


def require_token(f):
    """Require a signed access token. API keys are not accepted."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if _presented_api_key() is not None:
            return error_response("Token authentication required", 401, {"code": "UNAUTHENTICATED"})

        principal, failure = _authenticate_token()
        if failure is not None:
            return failure

        g.principal = principal
        return f(*args, **kwargs)

    return decorated_function


def require_roles(*role_groups):
    """
    Require the principal's role to be in any of the given roles/role groups.

    Role groups are sets of ManagementRole/StaffRole members; membership is
    kind-aware.
    """
    allowed = set()
    for group in role_groups:
        if isinstance(group, (set, frozenset, list, tuple)):
            allowed.update(group)
        else:
            allowed.add(group)
    allowed = frozenset(allowed)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = current_principal()
            decision = access_service.authorize_role(principal, allowed)

            if decision is AccessDecision.UNAUTHENTICATED:
                return error_response("Authentication required", 401, {"code": "UNAUTHENTICATED"})

            if not decision.allowed:
                required = sorted(role.value for role in allowed)
                current_app.logger.warning(
                    "Role denied: %s %s (role=%s) required one of %s for %s %s",
                    principal.kind.value, principal.id, principal.role.value,
                    required, request.method, request.path,
                )
                access_service.log_security_event(
                    principal,
                    event_type="ROLE_DENIED",
                    success=False,
                    reason=f"Role {principal.role.value} not in: {', '.join(required)}",
                    branch_id=principal.branch_id,
                    **client_context(),
                )
                return error_response("Insufficient permissions", 403, {"code": "FORBIDDEN"})

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_scope(*scopes):
    """
    Require at least one of the given scopes for API key principals.

    Token principals pass through unchanged.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = current_principal()
            decision = access_service.require_scope(principal, scopes)

            if decision is AccessDecision.UNAUTHENTICATED:
                return error_response("Authentication required", 401, {"code": "UNAUTHENTICATED"})

            if not decision.allowed:
                current_app.logger.warning(
                    "Scope denied: API key %s (user %s) lacks any of %s for %s %s",
                    principal.api_key_id, principal.id, list(scopes), request.method, request.path,
                )
                access_service.log_security_event(
                    principal,
                    event_type="SCOPE_DENIED",
                    success=False,
                    reason=f"Missing any of: {', '.join(scopes)}",
                    **client_context(),
                )
                return error_response("API key lacks required scope", 403, {
                    "code": "FORBIDDEN",
                    "required_scopes": list(scopes),
                })

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def _requested_branch_id():
    """Target branch from the URL, then the JSON body, then the query string."""
    view_args = request.view_args or {}
    if view_args.get("branch_id") is not None:
        return view_args["branch_id"]
    data = request.get_json(silent=True)
    if isinstance(data, dict) and data.get("branch_id") is not None:
        return parse_optional_int(data.get("branch_id"), "branch_id")
    return parse_optional_int(request.args.get("branch_id"), "branch_id")


def require_branch_access(f):
    """
    Deny staff principals acting on a branch other than their own.

    Management principals are branch-unscoped. The requested and owned
    branch ids go to the log and audit trail, never to the response body.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = current_principal()
        target_branch_id = _requested_branch_id()
        decision = access_service.authorize_branch(principal, target_branch_id)

        if decision is AccessDecision.UNAUTHENTICATED:
            return error_response("Authentication required", 401, {"code": "UNAUTHENTICATED"})

        if not decision.allowed:
            if decision is AccessDecision.CROSS_BRANCH_ACCESS:
                event_type = "CROSS_BRANCH_ACCESS_DENIED"
                reason = f"Requested branch {target_branch_id}, owns branch {principal.branch_id}"
            elif decision is AccessDecision.MISSING_BRANCH:
                event_type = "BRANCH_MISSING"
                reason = "Staff principal has no branch assignment"
            else:
                event_type = "ROLE_DENIED"
                reason = f"Kind {principal.kind.value} cannot act on branches"

            current_app.logger.warning(
                "Branch access denied: %s %s: %s (%s %s)",
                principal.kind.value, principal.id, reason, request.method, request.path,
            )
            access_service.log_security_event(
                principal,
                event_type=event_type,
                success=False,
                reason=reason,
                branch_id=target_branch_id,
                **client_context(),
            )
            return error_response("Access denied", 403, {"code": "FORBIDDEN"})

        return f(*args, **kwargs)

    return decorated_function
