"""Role-based access control (RBAC) for LearnPath.

Hierarchical permission system:
- ADMIN (level 3): Full system access, reviews and publishes modules
- INSTRUCTOR (level 2): Authors modules, grades essays on assigned modules
- STUDENT (level 1): Enrolls in modules and takes assessments
- USER (level 0): Registered user without learning access
"""

from enum import Enum


class UserRole(str, Enum):
    """User roles with hierarchical levels.

    Higher level = more permissions.
    """

    USER = "user"  # Level 0: Basic registered user
    STUDENT = "student"  # Level 1: Learner
    INSTRUCTOR = "instructor"  # Level 2: Module author / grader
    ADMIN = "admin"  # Level 3: System administrator


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.STUDENT: 1,
    UserRole.INSTRUCTOR: 2,
    UserRole.ADMIN: 3,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-3), defaults to 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.INSTRUCTOR)
        True
        >>> has_permission(UserRole.STUDENT, UserRole.INSTRUCTOR)
        False
        >>> has_permission("admin", "student")
        True
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN


def is_at_least_instructor(role: UserRole | str) -> bool:
    """Check if role is INSTRUCTOR or higher (ADMIN)."""
    return has_permission(role, UserRole.INSTRUCTOR)
