# Authorization Dependencies for the campaign routers
# Role gates applied before a request reaches a campaign facade

from fastapi import HTTPException, status, Depends

from auth.roles import UserType, Permission, Actor, has_any_permission
from auth.dependencies import get_current_actor


class AuthError(HTTPException):
    """Custom exception for authentication/authorization errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


def require_user_type(*allowed_types: UserType):
    """
    Dependency that requires the caller to be one of the specified types.

    Usage:
        @router.get("/campaigns")
        async def list_campaigns(
            actor: Actor = Depends(require_user_type(UserType.CLIENT))
        ):
            ...
    """
    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        # Admin can access everything
        if actor.is_admin:
            return actor

        if actor.role not in allowed_types:
            allowed_names = ", ".join(t.value for t in allowed_types)
            raise AuthError(
                detail=f"This endpoint requires user type: {allowed_names}",
                status_code=status.HTTP_403_FORBIDDEN
            )

        return actor

    return dependency


def require_permission(*permissions: Permission):
    """Dependency that requires the caller's role to hold any of the given permissions."""
    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_any_permission(actor.role, list(permissions)):
            raise AuthError(
                detail="You don't have permission to perform this action",
                status_code=status.HTTP_403_FORBIDDEN
            )
        return actor

    return dependency


def require_admin():
    """Dependency that requires the caller to be an admin."""
    async def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.is_admin:
            raise AuthError(
                detail="Admin access required",
                status_code=status.HTTP_403_FORBIDDEN
            )
        return actor

    return dependency
