"""
Unit tests for the role matrix.

Tests cover:
- The fixed capability table for every role
- ANY vs OWN resolution for update/delete
- Display rank is ordered but separate from authorization
"""

from __future__ import annotations

import pytest

from app.core.roles import (
    DELETE,
    ROLE_MATRIX,
    UPDATE,
    Operation,
    can_modify,
    can_perform,
    role_rank,
)
from taskflow_shared.schemas.common import ProjectRole


class TestRoleMatrix:
    """The table itself."""

    @pytest.mark.parametrize("role", [ProjectRole.OWNER, ProjectRole.ADMIN])
    def test_owner_and_admin_hold_everything(self, role):
        for op in Operation:
            assert can_perform(role, op)

    def test_member_capabilities(self):
        allowed = {
            Operation.CREATE_RESOURCE,
            Operation.READ_RESOURCE,
            Operation.UPDATE_OWN,
            Operation.DELETE_OWN,
        }
        for op in Operation:
            assert can_perform(ProjectRole.MEMBER, op) == (op in allowed)

    def test_viewer_reads_only(self):
        for op in Operation:
            assert can_perform(ProjectRole.VIEWER, op) == (op == Operation.READ_RESOURCE)

    def test_every_role_can_read(self):
        for role in ProjectRole:
            assert can_perform(role, Operation.READ_RESOURCE)

    def test_accepts_role_strings(self):
        assert can_perform("ADMIN", Operation.MANAGE_MEMBERS)
        assert not can_perform("VIEWER", Operation.CREATE_RESOURCE)

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            can_perform("SUPERUSER", Operation.READ_RESOURCE)

    def test_matrix_covers_every_role(self):
        assert set(ROLE_MATRIX) == set(ProjectRole)


class TestCanModify:
    """ANY, or OWN on one's own resource."""

    def test_member_updates_own(self):
        assert can_modify(ProjectRole.MEMBER, UPDATE, is_creator=True)

    def test_member_cannot_update_others(self):
        assert not can_modify(ProjectRole.MEMBER, UPDATE, is_creator=False)

    def test_member_delete_follows_ownership(self):
        assert can_modify(ProjectRole.MEMBER, DELETE, is_creator=True)
        assert not can_modify(ProjectRole.MEMBER, DELETE, is_creator=False)

    @pytest.mark.parametrize("role", [ProjectRole.OWNER, ProjectRole.ADMIN])
    def test_admins_modify_anything(self, role):
        for action in (UPDATE, DELETE):
            assert can_modify(role, action, is_creator=False)

    def test_viewer_cannot_modify_even_own(self):
        assert not can_modify(ProjectRole.VIEWER, UPDATE, is_creator=True)
        assert not can_modify(ProjectRole.VIEWER, DELETE, is_creator=True)


class TestRoleRank:
    def test_display_order(self):
        ranks = [role_rank(r) for r in ("OWNER", "ADMIN", "MEMBER", "VIEWER")]
        assert ranks == sorted(ranks)
        assert len(set(ranks)) == 4
