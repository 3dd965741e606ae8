"""
Staff user domain objects shared by the resolver, the membership manager
and the user stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from staff_authz.core.team_catalog import TeamAccessLevel, TeamRole


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TeamAssignment:
    team_id: str
    role: TeamRole
    assigned_at: datetime
    assigned_by: str

    def with_role(self, role: TeamRole) -> "TeamAssignment":
        # assigned_at / assigned_by describe the original assignment and are kept
        return replace(self, role=role)

    def to_dict(self) -> dict[str, Any]:
        return {
            "team_id": self.team_id,
            "role": self.role.value,
            "assigned_at": self.assigned_at.isoformat(),
            "assigned_by": self.assigned_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TeamAssignment":
        assigned_at = data["assigned_at"]
        if isinstance(assigned_at, str):
            assigned_at = datetime.fromisoformat(assigned_at)
        return cls(
            team_id=data["team_id"],
            role=TeamRole(data["role"]),
            assigned_at=assigned_at,
            assigned_by=data["assigned_by"],
        )


@dataclass
class StaffUser:
    id: str
    base_permissions: frozenset[str] = field(default_factory=frozenset)
    team_assignments: tuple[TeamAssignment, ...] = ()
    # Derived cache; base_permissions + team_assignments are the source of truth
    effective_permissions: frozenset[str] = field(default_factory=frozenset)
    version: int = 0
    email: Optional[str] = None
    name: Optional[str] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id

    def assignment_for(self, team_id: str) -> Optional[TeamAssignment]:
        for assignment in self.team_assignments:
            if assignment.team_id == team_id:
                return assignment
        return None

    def is_member_of(self, team_id: str) -> bool:
        return self.assignment_for(team_id) is not None

    def is_manager_of(self, team_id: str) -> bool:
        assignment = self.assignment_for(team_id)
        return assignment is not None and assignment.role == TeamRole.MANAGER

    def access_level(self, team_id: str) -> TeamAccessLevel:
        assignment = self.assignment_for(team_id)
        if assignment is None:
            return TeamAccessLevel.NO_ACCESS
        if assignment.role == TeamRole.MANAGER:
            return TeamAccessLevel.MANAGER
        return TeamAccessLevel.MEMBER

    def manager_team_ids(self) -> list[str]:
        return [a.team_id for a in self.team_assignments if a.role == TeamRole.MANAGER]

    def member_team_ids(self) -> list[str]:
        return [a.team_id for a in self.team_assignments if a.role == TeamRole.MEMBER]

    def copy(self, **changes: Any) -> "StaffUser":
        return replace(self, **changes)


@dataclass(frozen=True)
class PermissionDelta:
    previous_count: int
    new_count: int
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)

    @classmethod
    def between(cls, old: frozenset[str], new: frozenset[str]) -> "PermissionDelta":
        # Removals are always old - new, never a team's list taken on faith
        return cls(
            previous_count=len(old),
            new_count=len(new),
            added=tuple(sorted(new - old)),
            removed=tuple(sorted(old - new)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "previous_count": self.previous_count,
            "new_count": self.new_count,
            "added": list(self.added),
            "removed": list(self.removed),
        }
