"""
Role-Based Access Control (RBAC) Unit Tests
============================================

Tests for:
- Role hierarchy
- Role level checking
- require_admin / require_ops / require_reader dependencies
"""

import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from fastapi import HTTPException

from storesafe.models.role_enum import Role
from storesafe.core.dependencies.rbac import (
    ROLE_HIERARCHY,
    get_role_level,
    has_role_or_higher,
    require_admin,
    require_ops,
    require_reader,
)


pytestmark = [pytest.mark.rbac, pytest.mark.unit]


def _request(path: str = "/api/v1/incidents", method: str = "POST") -> MagicMock:
    request = MagicMock()
    request.url.path = path
    request.method = method
    return request


def _user(role: Role) -> MagicMock:
    user = MagicMock()
    user.id = uuid4()
    user.role = role
    return user


class TestRoleHierarchy:
    def test_role_hierarchy_order(self):
        assert ROLE_HIERARCHY == [
            Role.PENDING,
            Role.CLIENT,
            Role.READONLY,
            Role.OPS,
            Role.ADMIN,
        ]

    def test_levels(self):
        assert get_role_level(Role.PENDING) == 0
        assert get_role_level(Role.ADMIN) == 4

    def test_unknown_role_level(self):
        assert get_role_level("superuser") == -1

    @pytest.mark.parametrize(
        "user_role, required, allowed",
        [
            (Role.ADMIN, Role.OPS, True),
            (Role.OPS, Role.OPS, True),
            (Role.READONLY, Role.OPS, False),
            (Role.CLIENT, Role.READONLY, False),
            (Role.PENDING, Role.READONLY, False),
        ],
    )
    def test_has_role_or_higher(self, user_role, required, allowed):
        assert has_role_or_higher(user_role, required) is allowed


class TestRoleDependencies:
    """The dependencies return the user or raise 403."""

    def test_require_ops_allows_admin(self):
        # Arrange
        admin = _user(Role.ADMIN)

        # Act
        result = require_ops(request=_request(), current_user=admin)

        # Assert
        assert result is admin

    def test_require_ops_rejects_readonly(self):
        with pytest.raises(HTTPException) as exc_info:
            require_ops(request=_request(), current_user=_user(Role.READONLY))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Insufficient permissions for this action"

    def test_require_reader_rejects_pending(self):
        with pytest.raises(HTTPException) as exc_info:
            require_reader(request=_request(method="GET"), current_user=_user(Role.PENDING))

        assert exc_info.value.status_code == 403

    def test_require_reader_allows_readonly(self):
        viewer = _user(Role.READONLY)

        assert require_reader(request=_request(method="GET"), current_user=viewer) is viewer

    def test_require_admin_rejects_ops(self):
        with pytest.raises(HTTPException) as exc_info:
            require_admin(request=_request("/admin/users"), current_user=_user(Role.OPS))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "This action requires admin privileges"
