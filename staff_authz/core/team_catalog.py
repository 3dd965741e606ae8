"""
Team catalog: the immutable, process-wide registry of staff teams.

The catalog is built once at startup (from the built-in definitions or a
JSON file) and read concurrently without locking. Changing it means
building a new catalog, swapping it in with ``reload_team_catalog`` and
then running an explicit recalculation for every staff user.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

import structlog

from staff_authz.core.config import settings
from staff_authz.core.exceptions import (
    InvalidPermissionError,
    InvalidRoleError,
    InvalidTeamIdError,
    UnknownTeamError,
)
from staff_authz.core.team_definitions import (
    BASE_PERMISSIONS,
    BUILTIN_CATALOG_VERSION,
    TEAM_DEFINITIONS,
)

logger = structlog.get_logger()


class TeamRole(str, Enum):
    MEMBER = "member"
    MANAGER = "manager"


class TeamAccessLevel(str, Enum):
    NO_ACCESS = "no_access"
    MEMBER = "member"
    MANAGER = "manager"


def parse_role(role: Any) -> TeamRole:
    """Validate a role name at the boundary."""
    if isinstance(role, TeamRole):
        return role
    try:
        return TeamRole(str(role).strip().lower())
    except ValueError:
        raise InvalidRoleError(role) from None


@dataclass(frozen=True)
class TeamDefinition:
    id: str
    name: str
    description: str
    member_permissions: frozenset[str]
    # Additions on top of member_permissions for the manager role
    manager_permissions: frozenset[str]
    responsibilities: tuple[str, ...] = ()

    def permissions_for(self, role: TeamRole) -> frozenset[str]:
        if role == TeamRole.MANAGER:
            return self.member_permissions | self.manager_permissions
        return self.member_permissions

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TeamDefinition":
        return cls(
            id=str(data["id"]).strip(),
            name=data["name"],
            description=data.get("description", ""),
            member_permissions=frozenset(data.get("member_permissions", ())),
            manager_permissions=frozenset(data.get("manager_permissions", ())),
            responsibilities=tuple(data.get("responsibilities", ())),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "responsibilities": list(self.responsibilities),
            "member_permissions": sorted(self.member_permissions),
            "manager_permissions": sorted(self.permissions_for(TeamRole.MANAGER)),
        }


class TeamCatalog:
    def __init__(
        self,
        definitions: Iterable[TeamDefinition],
        base_permissions: Iterable[str] = BASE_PERMISSIONS,
        version: str = BUILTIN_CATALOG_VERSION,
    ):
        teams: dict[str, TeamDefinition] = {}
        for definition in definitions:
            if definition.id in teams:
                raise ValueError(f"Duplicate team id in catalog: {definition.id}")
            teams[definition.id] = definition

        self._teams: Mapping[str, TeamDefinition] = MappingProxyType(teams)
        self._base_permissions = frozenset(base_permissions)
        self._known_permissions = self._base_permissions.union(
            *(team.permissions_for(TeamRole.MANAGER) for team in teams.values())
        )
        self.version = version

    def __len__(self) -> int:
        return len(self._teams)

    def __contains__(self, team_id: object) -> bool:
        return team_id in self._teams

    @property
    def base_permissions(self) -> frozenset[str]:
        return self._base_permissions

    @property
    def known_permissions(self) -> frozenset[str]:
        """Base permission vocabulary plus every permission any team grants."""
        return self._known_permissions

    def team_ids(self) -> list[str]:
        return list(self._teams)

    def list_teams(self) -> list[TeamDefinition]:
        return list(self._teams.values())

    def get_team(self, team_id: str) -> TeamDefinition:
        team = self._teams.get(team_id)
        if team is None:
            raise UnknownTeamError(team_id)
        return team

    def require_team(self, team_id: str) -> TeamDefinition:
        """Like ``get_team`` but for request input: unknown ids are a validation error."""
        team = self._teams.get(team_id)
        if team is None:
            raise InvalidTeamIdError(team_id)
        return team

    def get_team_name(self, team_id: str) -> str:
        return self.get_team(team_id).name

    def get_team_permissions(self, team_id: str, role: Any) -> frozenset[str]:
        return self.require_team(team_id).permissions_for(parse_role(role))

    def validate_permissions(self, permissions: Iterable[str]) -> frozenset[str]:
        normalized = frozenset(p.strip() for p in permissions if p and p.strip())
        unknown = normalized - self._known_permissions
        if unknown:
            raise InvalidPermissionError(list(unknown))
        return normalized


def build_builtin_catalog() -> TeamCatalog:
    return TeamCatalog(
        (TeamDefinition.from_dict(data) for data in TEAM_DEFINITIONS),
        base_permissions=BASE_PERMISSIONS,
        version=BUILTIN_CATALOG_VERSION,
    )


def load_catalog_file(path: str | Path) -> TeamCatalog:
    """
    Load a catalog from JSON.

    Expected shape::

        {"version": "2024-06", "base_permissions": [...], "teams": [{...}, ...]}
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    catalog = TeamCatalog(
        (TeamDefinition.from_dict(team) for team in raw["teams"]),
        base_permissions=raw.get("base_permissions", BASE_PERMISSIONS),
        version=str(raw.get("version", Path(path).stem)),
    )
    logger.info("Team catalog loaded from file", path=str(path), version=catalog.version, teams=len(catalog))
    return catalog


_catalog: Optional[TeamCatalog] = None


def get_team_catalog() -> TeamCatalog:
    """Return the process-wide catalog, building it on first use."""
    global _catalog
    if _catalog is None:
        if settings.TEAM_CATALOG_PATH:
            _catalog = load_catalog_file(settings.TEAM_CATALOG_PATH)
        else:
            _catalog = build_builtin_catalog()
    return _catalog


def reload_team_catalog(catalog: TeamCatalog) -> TeamCatalog:
    """
    Swap in a new catalog version.

    Cached effective permissions are stale after this call until
    ``PermissionResolver.recalculate_all`` has run.
    """
    global _catalog
    previous = _catalog.version if _catalog is not None else None
    _catalog = catalog
    logger.warning(
        "Team catalog replaced; recalculate all staff permissions",
        previous_version=previous,
        version=catalog.version,
        teams=len(catalog),
    )
    return catalog
