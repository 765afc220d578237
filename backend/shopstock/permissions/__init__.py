# Overview: Permission system package.
# Re-exports all public APIs so callers import from shopstock.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLES,
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_USER,
    validate_role,
)
from .permission_set import PermissionSet
from .helpers import (
    get_all_permission_codes,
    get_permission_catalog,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_USER",
    "validate_role",
    "PermissionSet",
    "get_all_permission_codes",
    "get_permission_catalog",
    "validate_permission_code",
]
