"""User roles and route access tags for SecureShop.

Role Hierarchy (descending permissions):
- ADMIN: every order, user administration, catalog management, shipping
- USER: own profile and own orders only

Access Matrix:
┌──────────────────────────┬───────┬──────┬───────────┐
│ RouteAccess              │ ADMIN │ USER │ anonymous │
├──────────────────────────┼───────┼──────┼───────────┤
│ PUBLIC                   │   ✓   │  ✓   │     ✓     │
│ REQUIRES_ORDINARY        │   ✓   │  ✓   │           │
│ REQUIRES_ADMINISTRATOR   │   ✓   │      │           │
└──────────────────────────┴───────┴──────┴───────────┘
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles in SecureShop.

    Values are stored as TEXT in the database and must match exactly.
    """
    USER = "USER"
    ADMIN = "ADMIN"


class RouteAccess(str, Enum):
    """Access requirement attached to a route by the route policy table."""
    PUBLIC = "PUBLIC"
    REQUIRES_ORDINARY = "REQUIRES_ORDINARY"
    REQUIRES_ADMINISTRATOR = "REQUIRES_ADMINISTRATOR"


# Role hierarchy: each role includes permissions of all roles below it
ROLE_HIERARCHY = {
    UserRole.ADMIN: {UserRole.ADMIN, UserRole.USER},
    UserRole.USER: {UserRole.USER},
}


def has_permission(user_role: UserRole, required_role: UserRole) -> bool:
    """Check if a user role has permission to perform an action requiring a specific role.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.USER)
        True
        >>> has_permission(UserRole.USER, UserRole.ADMIN)
        False
    """
    return required_role in ROLE_HIERARCHY.get(user_role, set())


def role_satisfies(role: UserRole, access: RouteAccess) -> bool:
    """Whether an authenticated identity with ``role`` may use a route tagged ``access``."""
    if access == RouteAccess.PUBLIC:
        return True
    elif access == RouteAccess.REQUIRES_ORDINARY:
        return has_permission(role, UserRole.USER)
    elif access == RouteAccess.REQUIRES_ADMINISTRATOR:
        return has_permission(role, UserRole.ADMIN)
    return False
