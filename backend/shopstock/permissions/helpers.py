# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all permission codes, in definition order."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def get_permission_catalog():
    """
    Describe every permission flag and which roles get it by default.

    The UI renders its permission editor from this, so the set of flags it
    shows cannot drift from PermissionSet.
    """
    return [
        {
            "code": code,
            "name": name,
            "description": description,
            "category": category,
            "default_roles": sorted(
                role for role, codes in DEFAULT_ROLE_PERMISSIONS.items() if code in codes
            ),
        }
        for code, name, description, category in PERMISSION_DEFINITIONS
    ]
