# Overview: Permission definitions and default role grants.
# Each permission is defined as: (code, name, description, category)


class PermissionCategory:
    SALES = "SALES"
    INVENTORY = "INVENTORY"
    SYSTEM = "SYSTEM"


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Check out carts at the register (POS access)",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "Search sales transactions and reprint receipts",
        PermissionCategory.SALES,
    ),
    (
        "CANCEL_SALE",
        "Cancel Sale",
        "Cancel completed sales and return stock to inventory",
        PermissionCategory.SALES,
    ),
    (
        "REFUND_SALE",
        "Refund Sale",
        "Refund completed sales (monetary only)",
        PermissionCategory.SALES,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock quantities per location",
        PermissionCategory.INVENTORY,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_INVOICE_COUNTERS",
        "Manage Invoice Counters",
        "Inspect per-location invoice sequences",
        PermissionCategory.SYSTEM,
    ),
]


PERMISSION_DEFINITIONS = SALES_PERMISSIONS + INVENTORY_PERMISSIONS + SYSTEM_PERMISSIONS


DEFAULT_ROLE_PERMISSIONS = {
    "admin": [code for code, _, _, _ in PERMISSION_DEFINITIONS],
    "manager": [
        "CREATE_SALE",
        "VIEW_SALES",
        "CANCEL_SALE",
        "REFUND_SALE",
        "VIEW_INVENTORY",
    ],
    "cashier": [
        "CREATE_SALE",
        "VIEW_SALES",
        "VIEW_INVENTORY",
    ],
}


def get_all_permission_codes() -> list[str]:
    return [code for code, _, _, _ in PERMISSION_DEFINITIONS]


def validate_permission_code(code: str) -> bool:
    return code in get_all_permission_codes()
