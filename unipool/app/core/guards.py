"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List
from fastapi import Depends, HTTPException, status
from unipool.app.core.config import settings
from unipool.app.core.dependencies import get_current_user
from unipool.app.models.enums import UserRole
from unipool.app.models.user import User

DRIVER_ROLES = [UserRole.DRIVER, UserRole.BOTH]


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/rides")
        async def create_ride(current_user: User = Depends(require_role([UserRole.DRIVER, UserRole.BOTH]))):
            ...

    Args:
        allowed_roles: List of UserRole enums that are allowed to access the endpoint

    Returns:
        FastAPI dependency function that validates user role

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )
        return current_user

    return role_checker


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """
    Dependency for admin-only endpoints.

    Returns:
        The acting user if admin, raises 403 otherwise
    """
    if current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )

    return current_user


require_driver = require_role(DRIVER_ROLES)


def require_verified(current_user: User = Depends(get_current_user)) -> User:
    """
    Require both verification flags when verified accounts are enforced.

    With `require_verified_accounts` off (the default) this only authenticates.
    """
    if settings.require_verified_accounts and not (
        current_user.email_verified and current_user.phone_verified
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Please verify your email and phone number first"
        )

    return current_user


class OwnershipGuard:
    """
    Ownership guard for resources that belong to one user.

    Usage:
        ownership_guard = OwnershipGuard()

        ride = await load_ride(db, ride_id)
        ownership_guard.enforce(ride.driver_id, current_user, "ride")
    """

    def enforce(
        self,
        resource_owner_id: int,
        current_user: User,
        resource_name: str = "resource"
    ):
        """
        Raise 403 unless the current user owns the resource.

        Admins get no bypass here: only the owner may mutate their rides and bookings.
        """
        if current_user.id != resource_owner_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. You do not have permission to modify this {resource_name}."
            )


ownership_guard = OwnershipGuard()
