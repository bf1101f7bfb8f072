from __future__ import annotations

from app.application.security import (
    can_delete_forms,
    can_manage_users,
    can_reopen_forms,
    has_permission,
    is_privileged,
)


def test_admin_has_all_declared_permissions() -> None:
    assert can_manage_users("admin") is True
    assert is_privileged("admin") is True
    assert can_reopen_forms("admin") is True
    assert can_delete_forms("admin") is True
    assert has_permission("admin", "bypass_field_locks") is True


def test_user_has_no_elevated_permissions() -> None:
    assert can_manage_users("user") is False
    assert is_privileged("user") is False
    assert can_reopen_forms("user") is False
    assert can_delete_forms("user") is False


def test_unknown_role_has_no_permissions() -> None:
    assert has_permission("operator", "manage_users") is False
