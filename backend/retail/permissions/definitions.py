# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_PRODUCTS",
        "View Products",
        "View products, stock levels and stock transactions",
        PermissionCategory.CATALOG,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create and update products, prices and quantities",
        PermissionCategory.CATALOG,
    ),
    (
        "DELETE_PRODUCTS",
        "Delete Products",
        "Remove products from the catalog",
        PermissionCategory.CATALOG,
    ),
]

# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View customers and purchase history",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create and update customers",
        PermissionCategory.CUSTOMERS,
    ),
    (
        "DELETE_CUSTOMERS",
        "Delete Customers",
        "Remove customers",
        PermissionCategory.CUSTOMERS,
    ),
]

# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "View sales orders and edit history",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Create sales orders (decrements stock)",
        PermissionCategory.SALES,
    ),
    (
        "EDIT_SALE",
        "Edit Sale",
        "Edit existing sales orders",
        PermissionCategory.SALES,
    ),
    (
        "DELETE_SALE",
        "Delete Sale",
        "Delete sales orders",
        PermissionCategory.SALES,
    ),
]

# -- RETURNS --

RETURN_PERMISSIONS = [
    (
        "VIEW_RETURNS",
        "View Returns",
        "View return requests",
        PermissionCategory.RETURNS,
    ),
    (
        "CREATE_RETURN",
        "Create Return",
        "Submit return requests (pending approval)",
        PermissionCategory.RETURNS,
    ),
    (
        "APPROVE_RETURN",
        "Approve Return",
        "Approve or reject pending returns (restocks inventory)",
        PermissionCategory.RETURNS,
    ),
    (
        "DELETE_RETURN",
        "Delete Return",
        "Delete return records",
        PermissionCategory.RETURNS,
    ),
]

# -- DOCUMENTS --

DOCUMENT_PERMISSIONS = [
    (
        "VIEW_INVOICES",
        "View Invoices",
        "View invoices",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "GENERATE_INVOICE",
        "Generate Invoice",
        "Generate invoices from orders or directly",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "EDIT_INVOICE",
        "Edit Invoice",
        "Edit invoice items and details",
        PermissionCategory.DOCUMENTS,
    ),
    (
        "DELETE_INVOICE",
        "Delete Invoice",
        "Delete invoices",
        PermissionCategory.DOCUMENTS,
    ),
]

# -- FINANCE --

FINANCE_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "Access sales, profit and stock analytics",
        PermissionCategory.FINANCE,
    ),
    (
        "VIEW_EXPENSES",
        "View Expenses",
        "View expenses and expense summaries",
        PermissionCategory.FINANCE,
    ),
    (
        "MANAGE_EXPENSES",
        "Manage Expenses",
        "Record, update and delete expenses",
        PermissionCategory.FINANCE,
    ),
]

# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "List users, change roles, reset passwords and delete accounts",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + SALES_PERMISSIONS
    + RETURN_PERMISSIONS
    + DOCUMENT_PERMISSIONS
    + FINANCE_PERMISSIONS
    + USER_PERMISSIONS
)
