"""
Tests for the authorization checks over a staff user's resolved state.
"""

import pytest

from staff_authz.core import rbac
from staff_authz.core.exceptions import ForbiddenError
from staff_authz.core.team_catalog import TeamAccessLevel, TeamRole
from staff_authz.models.domain import StaffUser, TeamAssignment, utcnow


@pytest.fixture
def actor():
    return StaffUser(
        id="alice",
        team_assignments=(
            TeamAssignment(team_id="sales", role=TeamRole.MANAGER, assigned_at=utcnow(), assigned_by="admin"),
            TeamAssignment(team_id="marketing", role=TeamRole.MEMBER, assigned_at=utcnow(), assigned_by="admin"),
        ),
        effective_permissions=frozenset({"dealer_accounts", "analytics_view", "campaign_view"}),
    )


class TestPermissionChecks:
    def test_require_permission_grants(self, actor):
        assert rbac.require_permission(actor, "analytics_view") is actor

    def test_require_permission_denies(self, actor):
        with pytest.raises(ForbiddenError) as exc_info:
            rbac.require_permission(actor, "system_config")
        assert exc_info.value.status_code == 403
        assert exc_info.value.context["missing_permissions"] == ["system_config"]

    def test_require_all_permissions_lists_every_missing(self, actor):
        with pytest.raises(ForbiddenError) as exc_info:
            rbac.require_all_permissions(actor, ["analytics_view", "system_config", "user_management"])
        assert exc_info.value.context["missing_permissions"] == ["system_config", "user_management"]

    def test_require_all_permissions_grants(self, actor):
        assert rbac.require_all_permissions(actor, ["analytics_view", "campaign_view"]) is actor

    def test_require_any_permission(self, actor):
        assert rbac.require_any_permission(actor, ["system_config", "campaign_view"]) is actor
        with pytest.raises(ForbiddenError) as exc_info:
            rbac.require_any_permission(actor, ["system_config", "user_management"])
        assert exc_info.value.context["required_any_of"] == ["system_config", "user_management"]

    def test_checks_read_cached_effective_permissions_only(self):
        # Base permission not yet reflected in the cache is not honoured
        stale = StaffUser(id="bob", base_permissions=frozenset({"system_config"}))
        with pytest.raises(ForbiddenError):
            rbac.require_permission(stale, "system_config")


class TestTeamChecks:
    def test_team_access_for_member_and_manager(self, actor):
        assert rbac.require_team_access(actor, "sales") is actor
        assert rbac.require_team_access(actor, "marketing") is actor

    def test_team_access_denied(self, actor):
        with pytest.raises(ForbiddenError) as exc_info:
            rbac.require_team_access(actor, "finance")
        assert exc_info.value.context["required_team"] == "finance"

    def test_team_manager(self, actor):
        assert rbac.require_team_manager(actor, "sales") is actor
        with pytest.raises(ForbiddenError):
            rbac.require_team_manager(actor, "marketing")

    def test_access_level(self, actor):
        assert actor.access_level("sales") == TeamAccessLevel.MANAGER
        assert actor.access_level("marketing") == TeamAccessLevel.MEMBER
        assert actor.access_level("finance") == TeamAccessLevel.NO_ACCESS
