# Overview: Permission system package.
# Re-exports the public APIs: definitions, the role policy table and helpers.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    CUSTOMER_PERMISSIONS,
    SALES_PERMISSIONS,
    RETURN_PERMISSIONS,
    DOCUMENT_PERMISSIONS,
    FINANCE_PERMISSIONS,
    USER_PERMISSIONS,
)
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    describe_permissions,
)
from .roles import (
    ROLES,
    DEFAULT_ROLE,
    ROLE_PERMISSIONS,
    is_valid_role,
    permissions_for_role,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "CUSTOMER_PERMISSIONS",
    "SALES_PERMISSIONS",
    "RETURN_PERMISSIONS",
    "DOCUMENT_PERMISSIONS",
    "FINANCE_PERMISSIONS",
    "USER_PERMISSIONS",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "describe_permissions",
    "ROLES",
    "DEFAULT_ROLE",
    "ROLE_PERMISSIONS",
    "is_valid_role",
    "permissions_for_role",
]
