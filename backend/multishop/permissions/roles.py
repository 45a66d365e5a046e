# Overview: Principal kinds, per-kind role enums and the role groups used by routes.

"""
Management users and branch staff have disjoint role sets. Each kind gets its
own Enum so that a staff role can never be equal to a management role, even
when the underlying strings collide. Role groups are frozensets of enum
members, which makes membership checks kind-aware by construction.
"""

from enum import Enum


class PrincipalKind(Enum):
    MANAGEMENT = "Management"
    STAFF = "Staff"


class ManagementRole(Enum):
    OWNER = "Owner"
    MANAGER = "Manager"
    HEAD_BRANCH_MANAGER = "Head Branch Manager"
    MANAGEMENT = "Management"
    WAREHOUSE = "Warehouse"


class StaffRole(Enum):
    HEAD_BRANCH = "HeadBranch"
    ADMIN = "Admin"
    CASHIER = "Cashier"
    HEAD_COUNTER = "HeadCounter"
    STAFF = "Staff"


ROLE_ENUMS = {
    PrincipalKind.MANAGEMENT: ManagementRole,
    PrincipalKind.STAFF: StaffRole,
}

DEFAULT_ROLES = {
    PrincipalKind.MANAGEMENT: ManagementRole.MANAGEMENT,
    PrincipalKind.STAFF: StaffRole.STAFF,
}


# -- ROLE GROUPS --

ALL_MANAGEMENT_ROLES = frozenset(ManagementRole)
ALL_STAFF_ROLES = frozenset(StaffRole)
ALL_ROLES = ALL_MANAGEMENT_ROLES | ALL_STAFF_ROLES

# Management accounts and API keys
USER_ADMIN_ROLES = frozenset({ManagementRole.OWNER, ManagementRole.MANAGER})

# Branch writes and staff administration
BRANCH_ADMIN_ROLES = frozenset({
    ManagementRole.OWNER,
    ManagementRole.MANAGER,
    ManagementRole.HEAD_BRANCH_MANAGER,
    ManagementRole.MANAGEMENT,
})

CUSTOMER_ROLES = ALL_ROLES

CUSTOMER_DELETE_ROLES = frozenset({
    ManagementRole.OWNER,
    ManagementRole.MANAGER,
    ManagementRole.HEAD_BRANCH_MANAGER,
    ManagementRole.MANAGEMENT,
    StaffRole.HEAD_BRANCH,
    StaffRole.ADMIN,
})


def parse_kind(value):
    """Return the PrincipalKind for a stored/claimed string, or None."""
    if isinstance(value, PrincipalKind):
        return value
    for kind in PrincipalKind:
        if kind.value == value:
            return kind
    return None


def parse_role(kind, value):
    """
    Resolve a role string within the given principal kind.

    Returns None when the value is not a role of that kind; a staff role
    string never resolves under the management kind and vice versa.
    """
    enum_cls = ROLE_ENUMS.get(kind)
    if enum_cls is None or value is None:
        return None
    if isinstance(value, enum_cls):
        return value
    for role in enum_cls:
        if role.value == value:
            return role
    return None


def role_values(kind):
    return [role.value for role in ROLE_ENUMS[kind]]
