"""Tests for auth permissions."""

import pytest

from src.auth.permissions import (
    ROLE_HIERARCHY,
    UserRole,
    get_role_level,
    has_permission,
    is_admin,
    is_at_least_instructor,
)


class TestUserRole:
    """Tests for UserRole enum."""

    def test_role_values(self) -> None:
        """Roles should have correct string values."""
        assert UserRole.USER.value == "user"
        assert UserRole.STUDENT.value == "student"
        assert UserRole.INSTRUCTOR.value == "instructor"
        assert UserRole.ADMIN.value == "admin"

    def test_all_roles_have_levels(self) -> None:
        """All UserRole members should have defined levels."""
        for role in UserRole:
            assert role in ROLE_HIERARCHY


class TestGetRoleLevel:
    """Tests for get_role_level function."""

    @pytest.mark.parametrize(
        "role,expected_level",
        [
            (UserRole.USER, 0),
            ("student", 1),
            (UserRole.INSTRUCTOR, 2),
            ("admin", 3),
        ],
    )
    def test_known_roles(self, role: UserRole | str, expected_level: int) -> None:
        """Enum and string roles map to the same level."""
        assert get_role_level(role) == expected_level

    def test_invalid_role_returns_zero(self) -> None:
        """Unknown role strings get the lowest level."""
        assert get_role_level("guest") == 0
        assert get_role_level("superadmin") == 0


class TestHasPermission:
    """Tests for has_permission function."""

    def test_admin_has_all_permissions(self) -> None:
        for role in UserRole:
            assert has_permission(UserRole.ADMIN, role) is True

    def test_instructor_permissions(self) -> None:
        assert has_permission(UserRole.INSTRUCTOR, UserRole.STUDENT) is True
        assert has_permission(UserRole.INSTRUCTOR, UserRole.INSTRUCTOR) is True
        assert has_permission(UserRole.INSTRUCTOR, UserRole.ADMIN) is False

    def test_student_cannot_grade(self) -> None:
        assert has_permission("student", "instructor") is False


class TestRoleShortcuts:
    """Tests for is_admin and is_at_least_instructor."""

    def test_is_admin(self) -> None:
        assert is_admin(UserRole.ADMIN) is True
        assert is_admin("admin") is True
        assert is_admin("instructor") is False

    def test_is_at_least_instructor(self) -> None:
        assert is_at_least_instructor("instructor") is True
        assert is_at_least_instructor(UserRole.ADMIN) is True
        assert is_at_least_instructor(UserRole.STUDENT) is False
