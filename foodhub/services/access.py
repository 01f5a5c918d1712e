"""
Caller entitlement checks shared by the order services.

The caller is the ``User`` resolved by the authentication collaborator, or
``None`` when the request carries no valid session.
"""

from typing import Optional

from foodhub.core.exceptions import Forbidden, Unauthorized
from foodhub.models import Customer, User, UserRole


def require_caller(caller: Optional[User], message: str = "You must be logged in") -> User:
    if caller is None:
        raise Unauthorized(message)
    return caller


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def manages_restaurant(user: User, restaurant_id: str) -> bool:
    """True when ``user`` is staff of ``restaurant_id``."""
    manager = user.restaurant_manager
    return (
        user.role == UserRole.RESTAURANT
        and manager is not None
        and manager.restaurant_id == restaurant_id
    )


def require_customer(caller: Optional[User], message: str = "Only customers can place orders") -> Customer:
    """Return the caller's customer profile, or fail."""
    user = require_caller(caller)
    if user.role != UserRole.CUSTOMER or user.customer is None:
        raise Forbidden(message)
    return user.customer


def ensure_restaurant_access(
    caller: Optional[User],
    restaurant_id: str,
    message: str = "You are not authorized to access this restaurant",
) -> User:
    """Administrators, or staff managing ``restaurant_id``."""
    user = require_caller(caller)
    if not (is_admin(user) or manages_restaurant(user, restaurant_id)):
        raise Forbidden(message)
    return user


def ensure_admin(caller: Optional[User], message: str = "Administrator access required") -> User:
    user = require_caller(caller)
    if not is_admin(user):
        raise Forbidden(message)
    return user
