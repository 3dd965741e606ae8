"""
Tests for the team catalog: lookups, role permissions, validation and loading.
"""

import json

import pytest

from staff_authz.core import team_catalog
from staff_authz.core.exceptions import (
    InvalidPermissionError,
    InvalidRoleError,
    InvalidTeamIdError,
    UnknownTeamError,
)
from staff_authz.core.team_catalog import (
    TeamCatalog,
    TeamRole,
    build_builtin_catalog,
    load_catalog_file,
    parse_role,
)
from staff_authz.core.team_definitions import BASE_PERMISSIONS

from tests.conftest import make_team


# ── Built-in catalog ────────────────────────────────────────────


def test_builtin_catalog_has_eight_teams():
    catalog = build_builtin_catalog()
    assert len(catalog) == 8
    assert set(catalog.team_ids()) == {
        "sales",
        "customer_support",
        "content_moderation",
        "technical_operations",
        "marketing",
        "finance",
        "product",
        "executive",
    }


def test_builtin_manager_permissions_include_member_permissions():
    catalog = build_builtin_catalog()
    for team in catalog.list_teams():
        manager = team.permissions_for(TeamRole.MANAGER)
        assert team.member_permissions <= manager
        assert team.to_dict()["manager_permissions"] == sorted(manager)


def test_builtin_base_permissions_are_known():
    catalog = build_builtin_catalog()
    assert set(BASE_PERMISSIONS) <= catalog.known_permissions


# ── Lookups ─────────────────────────────────────────────────────


def test_get_team_unknown_raises_not_found(catalog):
    with pytest.raises(UnknownTeamError) as exc_info:
        catalog.get_team("legal")
    assert exc_info.value.status_code == 404
    assert exc_info.value.context["team_id"] == "legal"


def test_require_team_unknown_raises_validation_error(catalog):
    with pytest.raises(InvalidTeamIdError) as exc_info:
        catalog.require_team("legal")
    assert exc_info.value.status_code == 400
    assert exc_info.value.code == "invalid_team_id"


def test_get_team_name(catalog):
    assert catalog.get_team_name("sales") == "Sales"


def test_get_team_permissions_by_role(catalog):
    member = catalog.get_team_permissions("sales", "member")
    manager = catalog.get_team_permissions("sales", TeamRole.MANAGER)
    assert member == {"dealer_accounts", "analytics_view", "listing_approval"}
    assert manager == member | {"dealer_management", "bulk_operations"}


def test_contains(catalog):
    assert "sales" in catalog
    assert "legal" not in catalog


def test_duplicate_team_ids_rejected():
    with pytest.raises(ValueError):
        TeamCatalog([make_team("sales", ["a"]), make_team("sales", ["b"])])


# ── Roles and permissions ───────────────────────────────────────


@pytest.mark.parametrize("raw,expected", [
    ("member", TeamRole.MEMBER),
    ("MANAGER", TeamRole.MANAGER),
    (" manager ", TeamRole.MANAGER),
    (TeamRole.MEMBER, TeamRole.MEMBER),
])
def test_parse_role(raw, expected):
    assert parse_role(raw) == expected


@pytest.mark.parametrize("raw", ["admin", "", None, 1])
def test_parse_role_rejects_unknown(raw):
    with pytest.raises(InvalidRoleError):
        parse_role(raw)


def test_validate_permissions_accepts_base_and_team_permissions(catalog):
    result = catalog.validate_permissions([" analytics_view ", "dealer_management", ""])
    assert result == {"analytics_view", "dealer_management"}


def test_validate_permissions_rejects_unknown(catalog):
    with pytest.raises(InvalidPermissionError) as exc_info:
        catalog.validate_permissions(["analytics_view", "launch_rockets"])
    assert exc_info.value.context["permissions"] == ["launch_rockets"]


# ── Loading and reloading ───────────────────────────────────────


def test_load_catalog_file(tmp_path):
    path = tmp_path / "teams.json"
    path.write_text(json.dumps({
        "version": "2024-06",
        "base_permissions": ["user_management"],
        "teams": [
            {
                "id": "legal",
                "name": "Legal",
                "description": "Contracts",
                "member_permissions": ["view_contracts"],
                "manager_permissions": ["approve_contracts"],
            }
        ],
    }))

    catalog = load_catalog_file(path)

    assert catalog.version == "2024-06"
    assert catalog.team_ids() == ["legal"]
    assert catalog.get_team_permissions("legal", "manager") == {"view_contracts", "approve_contracts"}
    assert catalog.base_permissions == {"user_management"}


def test_reload_team_catalog_replaces_global(catalog, monkeypatch):
    monkeypatch.setattr(team_catalog, "_catalog", None)

    assert team_catalog.get_team_catalog().version == "builtin-1"
    team_catalog.reload_team_catalog(catalog)
    assert team_catalog.get_team_catalog() is catalog
