"""
Shared fixtures for the staff authorization test suite.
"""

import pytest

from staff_authz.core.locks import KeyedLock
from staff_authz.core.permission_resolver import PermissionResolver
from staff_authz.core.team_catalog import TeamCatalog, TeamDefinition
from staff_authz.models.domain import StaffUser
from staff_authz.repositories.memory import InMemoryStaffUserStore
from staff_authz.services.audit import AuditEmitter, InMemoryAuditSink
from staff_authz.services.team_membership import TeamMembershipService

TEST_BASE_PERMISSIONS = ("user_management", "system_config", "analytics_view", "A")


def make_team(team_id, member, manager=(), name=None):
    return TeamDefinition(
        id=team_id,
        name=name or team_id.replace("_", " ").title(),
        description=f"{team_id} team",
        member_permissions=frozenset(member),
        manager_permissions=frozenset(manager),
    )


@pytest.fixture
def catalog():
    return TeamCatalog(
        [
            make_team(
                "sales",
                member=["dealer_accounts", "analytics_view", "listing_approval"],
                manager=["dealer_management", "bulk_operations"],
            ),
            make_team(
                "marketing",
                member=["content_management", "campaign_view", "analytics_view"],
                manager=["campaign_management"],
            ),
            make_team("team_x", member=["B", "C"], manager=["X_manage"]),
            make_team("team_y", member=["C", "D"], manager=["E"]),
            make_team(
                "executive",
                member=["view_all_teams"],
                manager=["manage_staff_roles"],
            ),
        ],
        base_permissions=TEST_BASE_PERMISSIONS,
        version="test-1",
    )


@pytest.fixture
def store():
    return InMemoryStaffUserStore(
        [
            StaffUser(id="admin", base_permissions=frozenset({"user_management", "system_config"}),
                      effective_permissions=frozenset({"user_management", "system_config"}),
                      name="Admin", email="admin@example.com"),
            StaffUser(id="alice", name="Alice", email="alice@example.com"),
            StaffUser(id="bob", name="Bob", email="bob@example.com"),
            StaffUser(id="carol", name="Carol"),
            StaffUser(id="dave"),
            StaffUser(id="erin"),
        ]
    )


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit(audit_sink):
    return AuditEmitter([audit_sink])


@pytest.fixture
def resolver(store, catalog, audit):
    return PermissionResolver(store, catalog=catalog, locks=KeyedLock(), audit=audit, concurrency=3)


@pytest.fixture
def service(resolver, audit):
    return TeamMembershipService(resolver, audit=audit, bulk_concurrency=3, bulk_max_users=10)
