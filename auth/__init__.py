# Auth module for the Campaign Platform
# Provides role-based access control and authorization dependencies

from auth.roles import (
    UserType,
    Permission,
    Actor,
    ROLE_PERMISSIONS,
    get_permissions_for_role,
    has_permission,
    has_any_permission,
)

from auth.decorators import (
    AuthError,
    require_user_type,
    require_permission,
    require_admin,
)

__all__ = [
    # Roles
    "UserType",
    "Permission",
    "Actor",
    "ROLE_PERMISSIONS",
    "get_permissions_for_role",
    "has_permission",
    "has_any_permission",

    # Decorators
    "AuthError",
    "require_user_type",
    "require_permission",
    "require_admin",
]
