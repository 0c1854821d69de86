import pytest

from bazaar.utils.role_permissions import (
    ROLE_EDITOR,
    ROLE_SUPER_ADMIN,
    ROLE_USER,
    actor_type_for_role,
    get_role_permissions,
    role_allows_configuration,
    role_allows_moderation,
    validate_role,
)


def test_role_permission_matrix():
    assert get_role_permissions(ROLE_USER) == {"can_moderate": False, "can_configure": False}
    assert get_role_permissions(ROLE_EDITOR) == {"can_moderate": True, "can_configure": False}
    assert get_role_permissions(ROLE_SUPER_ADMIN) == {"can_moderate": True, "can_configure": True}


def test_get_role_permissions_returns_copy():
    perms = get_role_permissions(ROLE_EDITOR)
    perms["can_configure"] = True
    assert get_role_permissions(ROLE_EDITOR)["can_configure"] is False


def test_unknown_roles_are_rejected():
    with pytest.raises(ValueError):
        get_role_permissions("owner")
    with pytest.raises(ValueError):
        validate_role("owner")
    validate_role(ROLE_EDITOR)


def test_role_helpers():
    assert role_allows_moderation(ROLE_EDITOR)
    assert not role_allows_moderation(ROLE_USER)
    assert role_allows_configuration(ROLE_SUPER_ADMIN)
    assert not role_allows_configuration(ROLE_EDITOR)
    assert actor_type_for_role(ROLE_SUPER_ADMIN) == "admin"
    assert actor_type_for_role(ROLE_EDITOR) == "editor"
