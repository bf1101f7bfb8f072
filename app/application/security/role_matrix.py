from __future__ import annotations

from typing import Final, Literal

Role = Literal["admin", "user"]
Permission = Literal[
    "manage_users",
    "bypass_field_locks",
    "reopen_forms",
    "delete_forms",
]

_ROLE_PERMISSIONS: Final[dict[Role, frozenset[Permission]]] = {
    "admin": frozenset(
        {
            "manage_users",
            "bypass_field_locks",
            "reopen_forms",
            "delete_forms",
        }
    ),
    "user": frozenset(),
}


def has_permission(role: str, permission: Permission) -> bool:
    return permission in _ROLE_PERMISSIONS.get(role, frozenset())  # type: ignore[call-overload]


def can_manage_users(role: str) -> bool:
    return has_permission(role, "manage_users")


def is_privileged(role: str) -> bool:
    return has_permission(role, "bypass_field_locks")


def can_reopen_forms(role: str) -> bool:
    return has_permission(role, "reopen_forms")


def can_delete_forms(role: str) -> bool:
    return has_permission(role, "delete_forms")
