# Overview: Service-layer access decisions (role, branch, scope) and the security audit log.

"""
Access Control Evaluator

Decisions are returned as AccessDecision values rather than raised, so the
caller chooses the response (401/403/404) and what to log.

Composition: role check first, then branch check. A failure at either stage
short-circuits.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from ..extensions import db
from ..models import SecurityEvent
from ..permissions import ManagementRole, PrincipalKind, StaffRole
from ..principal import Principal


class AccessDecision(Enum):
    ALLOW = "ALLOW"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    MISSING_BRANCH = "MISSING_BRANCH"
    CROSS_BRANCH_ACCESS = "CROSS_BRANCH_ACCESS"

    @property
    def allowed(self) -> bool:
        return self is AccessDecision.ALLOW


_ROLE_TYPE = {
    PrincipalKind.MANAGEMENT: ManagementRole,
    PrincipalKind.STAFF: StaffRole,
}


def _role_matches_kind(principal: Principal) -> bool:
    expected = _ROLE_TYPE.get(principal.kind)
    return expected is not None and isinstance(principal.role, expected)


def authorize_role(principal: Principal | None, allowed_roles: Iterable) -> AccessDecision:
    """
    Role-membership check.

    Roles are enum members of per-kind enums, so a staff role never matches a
    management role entry even when the underlying strings collide.
    """
    if principal is None:
        return AccessDecision.UNAUTHENTICATED
    if not _role_matches_kind(principal):
        return AccessDecision.FORBIDDEN
    if principal.role not in frozenset(allowed_roles):
        return AccessDecision.FORBIDDEN
    return AccessDecision.ALLOW


def authorize_branch(principal: Principal | None, target_branch_id: int | None) -> AccessDecision:
    """
    Branch-ownership check.

    - Management principals: always ALLOW (branch-unscoped authority)
    - Staff principals without a branch: MISSING_BRANCH
    - Staff principals targeting another branch: CROSS_BRANCH_ACCESS
    - Staff principals with no target: ALLOW (caller defaults to own branch)
    """
    if principal is None:
        return AccessDecision.UNAUTHENTICATED
    if principal.kind is PrincipalKind.MANAGEMENT and _role_matches_kind(principal):
        return AccessDecision.ALLOW
    if principal.kind is PrincipalKind.STAFF and _role_matches_kind(principal):
        if principal.branch_id is None:
            return AccessDecision.MISSING_BRANCH
        if target_branch_id is not None and target_branch_id != principal.branch_id:
            return AccessDecision.CROSS_BRANCH_ACCESS
        return AccessDecision.ALLOW
    return AccessDecision.FORBIDDEN


def authorize(principal: Principal | None, allowed_roles: Iterable, target_branch_id: int | None = None) -> AccessDecision:
    decision = authorize_role(principal, allowed_roles)
    if not decision.allowed:
        return decision
    return authorize_branch(principal, target_branch_id)


def require_scope(principal: Principal | None, required_scopes: Iterable[str]) -> AccessDecision:
    """
    Scope check for API key principals.

    Token principals (scopes is None) skip the check. API key principals
    pass when they hold at least one of the required scopes.
    """
    if principal is None:
        return AccessDecision.UNAUTHENTICATED
    if principal.scopes is None:
        return AccessDecision.ALLOW
    if set(principal.scopes) & set(required_scopes):
        return AccessDecision.ALLOW
    return AccessDecision.FORBIDDEN


def log_security_event(
    principal: Principal | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    branch_id: int | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    username: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    IMMUTABLE: Rows are append-only.

    event_type examples:
    - LOGIN_SUCCESS / LOGIN_FAILED
    - TOKEN_REFRESHED
    - ROLE_DENIED / SCOPE_DENIED
    - CROSS_BRANCH_ACCESS_DENIED / BRANCH_MISSING
    - API_KEY_CREATED / API_KEY_REVOKED / API_KEY_REJECTED
    """
    event = SecurityEvent(
        principal_kind=principal.kind.value if principal else None,
        principal_id=principal.id if principal else None,
        username=principal.username if principal else username,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        branch_id=branch_id,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:512] or None,
    )
    db.session.add(event)
    db.session.commit()
    return event
