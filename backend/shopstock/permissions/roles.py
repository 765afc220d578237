# Overview: Role names and the role -> default permission table.

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_USER = "user"

ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_USER)

# Single source of truth for role defaults. PermissionSet.for_role() reads
# this table; nothing else should hardcode per-role flags.
DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: frozenset({
        "can_view_inventory",
        "can_add_inventory",
        "can_edit_inventory",
        "can_approve_inventory",
        "can_delete_inventory",
        "can_manage_users",
    }),
    ROLE_MANAGER: frozenset({
        "can_view_inventory",
        "can_add_inventory",
        "can_edit_inventory",
        "can_approve_inventory",
    }),
    ROLE_USER: frozenset({
        "can_view_inventory",
        "can_add_inventory",
    }),
}


def validate_role(role) -> bool:
    """Check if a role name is valid."""
    return role in ROLES
