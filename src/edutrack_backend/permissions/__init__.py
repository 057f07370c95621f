from edutrack_backend.permissions.principal import Principal, Role, ROLE_PERMISSIONS
from edutrack_backend.permissions.core import (
    check_permissions,
    check_role,
    check_student_scope,
    get_authorized,
    can_access,
)

__all__ = [
    "Principal",
    "Role",
    "ROLE_PERMISSIONS",
    "check_permissions",
    "check_role",
    "check_student_scope",
    "get_authorized",
    "can_access",
]
