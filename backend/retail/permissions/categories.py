# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    CUSTOMERS = "CUSTOMERS"
    SALES = "SALES"
    RETURNS = "RETURNS"
    DOCUMENTS = "DOCUMENTS"
    FINANCE = "FINANCE"
    USERS = "USERS"
