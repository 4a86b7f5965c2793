# Overview: Role -> permission policy table.
# Every authorization decision in the API resolves through ROLE_PERMISSIONS.

from .helpers import get_all_permission_codes


ROLES = ("admin", "manager", "sales", "viewer")

DEFAULT_ROLE = "viewer"

_READ_ONLY = {
    "VIEW_PRODUCTS",
    "VIEW_CUSTOMERS",
    "VIEW_SALES",
    "VIEW_RETURNS",
    "VIEW_INVOICES",
    "VIEW_REPORTS",
    "CREATE_RETURN",
}

ROLE_PERMISSIONS = {
    # Admin holds every permission
    "admin": set(get_all_permission_codes()),
    "manager": _READ_ONLY | {
        "MANAGE_PRODUCTS",
        "MANAGE_CUSTOMERS",
        "DELETE_CUSTOMERS",
        "APPROVE_RETURN",
        "GENERATE_INVOICE",
        "VIEW_EXPENSES",
        "MANAGE_EXPENSES",
    },
    "sales": _READ_ONLY | {
        "MANAGE_CUSTOMERS",
        "CREATE_SALE",
        "GENERATE_INVOICE",
    },
    "viewer": set(_READ_ONLY),
}


def is_valid_role(role) -> bool:
    return role in ROLES


def permissions_for_role(role) -> set[str]:
    """Unknown roles resolve to no permissions (fail closed)."""
    return set(ROLE_PERMISSIONS.get(role, set()))
