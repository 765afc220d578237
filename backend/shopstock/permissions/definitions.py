# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)
# The code is also the field name on PermissionSet.

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "can_view_inventory",
        "View Inventory",
        "View inventory items and sales",
        PermissionCategory.INVENTORY,
    ),
    (
        "can_add_inventory",
        "Add Inventory",
        "Submit new inventory items for approval",
        PermissionCategory.INVENTORY,
    ),
    (
        "can_edit_inventory",
        "Edit Inventory",
        "Edit inventory item details",
        PermissionCategory.INVENTORY,
    ),
    (
        "can_approve_inventory",
        "Approve Inventory",
        "Approve or reject pending inventory items",
        PermissionCategory.INVENTORY,
    ),
    (
        "can_delete_inventory",
        "Delete Inventory",
        "Delete inventory items",
        PermissionCategory.INVENTORY,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "can_manage_users",
        "Manage Users",
        "Change user roles and permissions",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = INVENTORY_PERMISSIONS + USER_PERMISSIONS
