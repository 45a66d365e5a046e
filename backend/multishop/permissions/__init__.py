# Overview: Role and scope package.
# Re-exports all public APIs for flat imports.

from .roles import (
    PrincipalKind,
    ManagementRole,
    StaffRole,
    DEFAULT_ROLES,
    ALL_MANAGEMENT_ROLES,
    ALL_STAFF_ROLES,
    ALL_ROLES,
    USER_ADMIN_ROLES,
    BRANCH_ADMIN_ROLES,
    CUSTOMER_ROLES,
    CUSTOMER_DELETE_ROLES,
    parse_kind,
    parse_role,
    role_values,
)
from .scopes import (
    SCOPES,
    READ_CUSTOMERS,
    WRITE_CUSTOMERS,
    READ_BRANCHES,
    WRITE_BRANCHES,
    READ_STAFF,
    READ_DASHBOARD,
    is_known_scope,
    scope_catalogue,
    scope_codes,
)

__all__ = [
    "PrincipalKind",
    "ManagementRole",
    "StaffRole",
    "DEFAULT_ROLES",
    "ALL_MANAGEMENT_ROLES",
    "ALL_STAFF_ROLES",
    "ALL_ROLES",
    "USER_ADMIN_ROLES",
    "BRANCH_ADMIN_ROLES",
    "CUSTOMER_ROLES",
    "CUSTOMER_DELETE_ROLES",
    "parse_kind",
    "parse_role",
    "role_values",
    "SCOPES",
    "READ_CUSTOMERS",
    "WRITE_CUSTOMERS",
    "READ_BRANCHES",
    "WRITE_BRANCHES",
    "READ_STAFF",
    "READ_DASHBOARD",
    "is_known_scope",
    "scope_catalogue",
    "scope_codes",
]
