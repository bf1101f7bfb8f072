from app.application.security.role_matrix import (
    Permission,
    Role,
    can_delete_forms,
    can_manage_users,
    can_reopen_forms,
    has_permission,
    is_privileged,
)

__all__ = [
    "Permission",
    "Role",
    "can_delete_forms",
    "can_manage_users",
    "can_reopen_forms",
    "has_permission",
    "is_privileged",
]
