# Overview: API key scopes; a key principal may only do what its scopes name.

READ_CUSTOMERS = "read:customers"
WRITE_CUSTOMERS = "write:customers"
READ_BRANCHES = "read:branches"
WRITE_BRANCHES = "write:branches"
READ_STAFF = "read:staff"
READ_DASHBOARD = "read:dashboard"


# code -> (display name, description); insertion order is the catalogue order
SCOPES = {
    READ_CUSTOMERS: ("Read Customers", "List and view customers"),
    WRITE_CUSTOMERS: ("Write Customers", "Create, update and delete customers"),
    READ_BRANCHES: ("Read Branches", "List and view branches"),
    WRITE_BRANCHES: ("Write Branches", "Create, update and delete branches"),
    READ_STAFF: ("Read Staff", "List and view staff accounts"),
    READ_DASHBOARD: ("Read Dashboard", "View dashboard aggregates"),
}


def scope_codes() -> list[str]:
    return list(SCOPES)


def is_known_scope(code) -> bool:
    return isinstance(code, str) and code in SCOPES


def scope_catalogue() -> list[dict]:
    """Every scope as {code, name, description}, for clients building key forms."""
    return [
        {"code": code, "name": name, "description": description}
        for code, (name, description) in SCOPES.items()
    ]
