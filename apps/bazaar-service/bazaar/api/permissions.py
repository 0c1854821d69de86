"""
Permission checks for resource access control.

Key helpers:
- can_view_ad(ad, current_user)
- can_edit_ad(ad, current_user)
- can_view_transaction(txn, current_user)
- can_moderate(current_user) / can_configure(current_user)
"""
from typing import Optional, Dict, Any

from bazaar.utils.role_permissions import (
    role_allows_moderation as _role_allows_moderation,
    role_allows_configuration as _role_allows_configuration,
)

PUBLIC_AD_STATUSES = frozenset({"approved", "active"})


def can_moderate(current_user: Optional[Dict[str, Any]]) -> bool:
    if not current_user:
        return False
    return _role_allows_moderation(current_user.get("role") or "")


def can_configure(current_user: Optional[Dict[str, Any]]) -> bool:
    if not current_user:
        return False
    return _role_allows_configuration(current_user.get("role") or "")


def is_owner(resource, current_user: Optional[Dict[str, Any]]) -> bool:
    if resource is None or not current_user:
        return False
    return getattr(resource, "user_id", None) == current_user.get("id")


def can_view_ad(ad, current_user: Optional[Dict[str, Any]]) -> bool:
    """Live ads are public; anything else only for the owner and staff."""
    if ad is None or ad.deleted_at is not None:
        return False
    if ad.status in PUBLIC_AD_STATUSES:
        return True
    return is_owner(ad, current_user) or can_moderate(current_user)


def can_edit_ad(ad, current_user: Optional[Dict[str, Any]]) -> bool:
    return is_owner(ad, current_user)


def can_view_transaction(txn, current_user: Optional[Dict[str, Any]]) -> bool:
    return is_owner(txn, current_user) or can_moderate(current_user)
