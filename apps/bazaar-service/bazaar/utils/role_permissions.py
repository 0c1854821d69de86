"""
Role-based permission utilities for marketplace accounts.

Accounts carry a single platform role. Staff roles unlock the moderation
dashboard; the super admin additionally manages pricing, staff accounts
and site settings.
"""

from typing import Dict, FrozenSet
from enum import Enum


# Central role constants to ensure consistency across the codebase
ROLE_USER = "user"
ROLE_EDITOR = "editor"
ROLE_SUPER_ADMIN = "super_admin"
ROLE_PERMISSIONS = {
    ROLE_USER: {
        "can_moderate": False,
        "can_configure": False,
    },
    ROLE_EDITOR: {
        "can_moderate": True,
        "can_configure": False,
    },
    ROLE_SUPER_ADMIN: {
        "can_moderate": True,
        "can_configure": True,
    },
}

ALLOWED_ROLES = set(ROLE_PERMISSIONS.keys())

# Derived role groups
STAFF_ROLES: FrozenSet[str] = frozenset({ROLE_EDITOR, ROLE_SUPER_ADMIN})
CONFIGURE_ROLES: FrozenSet[str] = frozenset({ROLE_SUPER_ADMIN})


class RoleEnum(str, Enum):
    """Enum for account roles used in schemas and validation."""
    user = ROLE_USER
    editor = ROLE_EDITOR
    super_admin = ROLE_SUPER_ADMIN


def get_role_permissions(role: str) -> Dict[str, bool]:
    """
    Get the default permissions for a given role.

    Raises:
        ValueError: If role is not recognized
    """
    if role not in ROLE_PERMISSIONS:
        raise ValueError(f"Unknown role: {role}. Allowed roles: {list(ROLE_PERMISSIONS.keys())}")

    return ROLE_PERMISSIONS[role].copy()


def validate_role(role: str) -> None:
    """
    Validate that a role is allowed.

    Raises:
        ValueError: If role is not allowed
    """
    if role not in ALLOWED_ROLES:
        raise ValueError(f"Invalid role '{role}'. Allowed roles: {sorted(ALLOWED_ROLES)}")


def role_allows_moderation(role: str) -> bool:
    """Return True if the role may use the editor dashboard."""
    return role in STAFF_ROLES


def role_allows_configuration(role: str) -> bool:
    """Return True if the role may change pricing, staff and site settings."""
    return role in CONFIGURE_ROLES


def actor_type_for_role(role: str) -> str:
    """Label recorded in ad review history for a staff action."""
    return "admin" if role == ROLE_SUPER_ADMIN else "editor"
