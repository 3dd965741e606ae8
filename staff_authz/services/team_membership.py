"""
Team Membership Service
Creates, updates and removes staff team assignments.

Every mutation is one unit per user, serialised on the user's lock:
load the user, apply the change, rebuild the effective permission cache
through the resolver and persist both together with a version check.
Permission removals are always computed as old effective minus new
effective, so a permission still granted by another team or by base
permissions is never dropped.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

import structlog

from staff_authz.core.config import settings
from staff_authz.core.exceptions import (
    BulkLimitExceededError,
    DuplicateAssignmentError,
    EmptyUserIdListError,
    NotAssignedError,
    RoleUnchangedError,
    StaffAuthzError,
)
from staff_authz.core.permission_resolver import PermissionResolver
from staff_authz.core.team_catalog import TeamCatalog, TeamDefinition, TeamRole, parse_role
from staff_authz.models.domain import PermissionDelta, StaffUser, TeamAssignment, utcnow
from staff_authz.services.audit import AuditAction, AuditEmitter, AuditRecord

logger = structlog.get_logger()


@dataclass(frozen=True)
class MembershipChange:
    user_id: str
    team_id: str
    role: Optional[TeamRole]
    delta: PermissionDelta
    version: int
    previous_role: Optional[TeamRole] = None


@dataclass(frozen=True)
class BulkAssignItem:
    user_id: str
    success: bool
    delta: Optional[PermissionDelta] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class BulkAssignResult:
    team_id: str
    role: TeamRole
    success_count: int = 0
    failure_count: int = 0
    results: list[BulkAssignItem] = field(default_factory=list)


@dataclass(frozen=True)
class TeamMember:
    user_id: str
    email: Optional[str]
    name: str
    role: TeamRole
    assigned_at: datetime
    assigned_by: str


@dataclass(frozen=True)
class UserTeamInfo:
    team_id: str
    team_name: str
    team_description: str
    role: TeamRole
    assigned_at: datetime
    assigned_by: str
    permissions: tuple[str, ...]


@dataclass(frozen=True)
class UserTeamSummary:
    user_id: str
    email: Optional[str]
    name: Optional[str]
    teams: list[UserTeamInfo]
    base_permissions: list[str]
    effective_permissions: list[str]
    manager_of: list[str]
    member_of: list[str]

    @property
    def total_permissions(self) -> int:
        return len(self.effective_permissions)


@dataclass(frozen=True)
class TeamStats:
    team_id: str
    name: str
    manager_count: int
    member_count: int

    @property
    def total_members(self) -> int:
        return self.manager_count + self.member_count


@dataclass(frozen=True)
class TeamStatsReport:
    teams: list[TeamStats]
    total_assignments: int
    total_staff: int
    unassigned_staff: int
    teams_without_members: list[str]


@dataclass(frozen=True)
class TeamDetails:
    team: TeamDefinition
    stats: TeamStats
    members: list[TeamMember]


class TeamMembershipService:
    def __init__(
        self,
        resolver: PermissionResolver,
        audit: Optional[AuditEmitter] = None,
        bulk_concurrency: Optional[int] = None,
        bulk_max_users: Optional[int] = None,
    ):
        self.resolver = resolver
        self.store = resolver.store
        self.locks = resolver.locks
        self.audit = audit
        self.bulk_concurrency = bulk_concurrency or settings.BULK_CONCURRENCY
        self.bulk_max_users = bulk_max_users or settings.BULK_MAX_USERS

    @property
    def catalog(self) -> TeamCatalog:
        return self.resolver.catalog

    # ==================== Mutations ====================

    async def assign(self, user_id: str, team_id: str, role: Any, actor: str) -> MembershipChange:
        team = self.catalog.require_team(team_id)
        role = parse_role(role)

        async with self.locks.hold(user_id):
            user = await self.store.get(user_id)

            existing = user.assignment_for(team.id)
            if existing is not None:
                logger.info(
                    "Duplicate team assignment rejected",
                    user_id=user_id,
                    team_id=team.id,
                    current_role=existing.role.value,
                )
                raise DuplicateAssignmentError(user_id, team.id, existing.role.value, team.name)

            assignment = TeamAssignment(
                team_id=team.id,
                role=role,
                assigned_at=utcnow(),
                assigned_by=actor,
            )
            stored, delta = await self._commit(user, assignments=user.team_assignments + (assignment,))

        logger.info(
            "Team assignment completed",
            user_id=user_id,
            team_id=team.id,
            role=role.value,
            assigned_by=actor,
            permissions_added=len(delta.added),
            permission_count=delta.new_count,
        )
        self._emit(actor, AuditAction.TEAM_ASSIGNED, user_id, delta, team_id=team.id, role=role)
        return MembershipChange(user_id=user_id, team_id=team.id, role=role, delta=delta, version=stored.version)

    async def update_role(self, user_id: str, team_id: str, new_role: Any, actor: str) -> MembershipChange:
        team = self.catalog.require_team(team_id)
        new_role = parse_role(new_role)

        async with self.locks.hold(user_id):
            user = await self.store.get(user_id)

            current = user.assignment_for(team.id)
            if current is None:
                raise NotAssignedError(user_id, team.id)
            if current.role == new_role:
                raise RoleUnchangedError(user_id, team.id, current.role.value)

            assignments = tuple(
                a.with_role(new_role) if a.team_id == team.id else a
                for a in user.team_assignments
            )
            stored, delta = await self._commit(user, assignments=assignments)

        if new_role == TeamRole.MANAGER and delta.removed:
            # Only possible when the old cache had drifted from its sources
            logger.warning("Promotion repaired stale permissions", user_id=user_id, team_id=team.id, removed=list(delta.removed))

        logger.info(
            "Team role update completed",
            user_id=user_id,
            team_id=team.id,
            old_role=current.role.value,
            new_role=new_role.value,
            updated_by=actor,
            permissions_changed=len(delta.added) + len(delta.removed),
        )
        self._emit(actor, AuditAction.TEAM_ROLE_UPDATED, user_id, delta, team_id=team.id, role=new_role)
        return MembershipChange(
            user_id=user_id,
            team_id=team.id,
            role=new_role,
            delta=delta,
            version=stored.version,
            previous_role=current.role,
        )

    async def remove(self, user_id: str, team_id: str, actor: str) -> MembershipChange:
        team = self.catalog.require_team(team_id)

        async with self.locks.hold(user_id):
            user = await self.store.get(user_id)

            current = user.assignment_for(team.id)
            if current is None:
                raise NotAssignedError(user_id, team.id)

            assignments = tuple(a for a in user.team_assignments if a.team_id != team.id)
            stored, delta = await self._commit(user, assignments=assignments)

        logger.info(
            "Team removal completed",
            user_id=user_id,
            team_id=team.id,
            removed_by=actor,
            permissions_removed=len(delta.removed),
            permission_count=delta.new_count,
        )
        self._emit(actor, AuditAction.TEAM_REMOVED, user_id, delta, team_id=team.id, role=current.role)
        return MembershipChange(
            user_id=user_id,
            team_id=team.id,
            role=None,
            delta=delta,
            version=stored.version,
            previous_role=current.role,
        )

    async def update_base_permissions(self, user_id: str, permissions: Iterable[str], actor: str) -> PermissionDelta:
        base = self.catalog.validate_permissions(permissions)

        async with self.locks.hold(user_id):
            user = await self.store.get(user_id)
            stored, delta = await self._commit(user, base_permissions=base)

        logger.info(
            "Base permissions updated",
            user_id=user_id,
            updated_by=actor,
            base_count=len(base),
            permission_count=delta.new_count,
        )
        self._emit(actor, AuditAction.BASE_PERMISSIONS_UPDATED, user_id, delta)
        return delta

    async def bulk_assign(self, user_ids: list[str], team_id: str, role: Any, actor: str) -> BulkAssignResult:
        """
        Assign each user independently. Invalid input is rejected up front;
        after that a failing user is recorded and the others proceed.
        """
        if not user_ids:
            raise EmptyUserIdListError()
        if len(user_ids) > self.bulk_max_users:
            raise BulkLimitExceededError(len(user_ids), self.bulk_max_users)
        team = self.catalog.require_team(team_id)
        role = parse_role(role)

        semaphore = asyncio.Semaphore(self.bulk_concurrency)

        async def assign_one(user_id: str) -> BulkAssignItem:
            async with semaphore:
                try:
                    change = await self.assign(user_id, team.id, role, actor)
                    return BulkAssignItem(user_id=user_id, success=True, delta=change.delta)
                except StaffAuthzError as e:
                    return BulkAssignItem(user_id=user_id, success=False, error=e.message, error_code=e.code)
                except Exception as e:
                    logger.error("Unexpected bulk assignment failure", user_id=user_id, team_id=team.id, error=str(e))
                    return BulkAssignItem(user_id=user_id, success=False, error=str(e), error_code="internal_error")

        items = await asyncio.gather(*(assign_one(user_id) for user_id in user_ids))

        result = BulkAssignResult(
            team_id=team.id,
            role=role,
            success_count=sum(1 for item in items if item.success),
            failure_count=sum(1 for item in items if not item.success),
            results=list(items),
        )
        logger.info(
            "Bulk team assignment completed",
            team_id=team.id,
            role=role.value,
            assigned_by=actor,
            total=len(user_ids),
            successful=result.success_count,
            failed=result.failure_count,
        )
        return result

    async def _commit(
        self,
        user: StaffUser,
        *,
        assignments: Optional[tuple[TeamAssignment, ...]] = None,
        base_permissions: Optional[frozenset[str]] = None,
    ) -> tuple[StaffUser, PermissionDelta]:
        """Rebuild the effective cache and persist it with the new sources. Caller holds the user lock."""
        updated, delta = self.resolver.rebuild(user, base_permissions=base_permissions, assignments=assignments)
        stored = await self.store.put(updated, expected_version=user.version)
        return stored, delta

    def _emit(
        self,
        actor: str,
        action: AuditAction,
        user_id: str,
        delta: PermissionDelta,
        team_id: Optional[str] = None,
        role: Optional[TeamRole] = None,
    ) -> None:
        if self.audit is None:
            return
        self.audit.emit(
            AuditRecord.for_change(
                actor=actor,
                action=action,
                target_user_id=user_id,
                delta=delta,
                team_id=team_id,
                role=role.value if role is not None else None,
            )
        )

    # ==================== Queries ====================

    async def list_members(self, team_id: str) -> list[TeamMember]:
        team = self.catalog.require_team(team_id)
        members = []
        for user in await self.store.list_by_team(team.id):
            assignment = user.assignment_for(team.id)
            members.append(
                TeamMember(
                    user_id=user.id,
                    email=user.email,
                    name=user.display_name,
                    role=assignment.role,
                    assigned_at=assignment.assigned_at,
                    assigned_by=assignment.assigned_by,
                )
            )
        return members

    async def list_unassigned(self) -> list[StaffUser]:
        return await self.store.list_unassigned()

    async def get_user_teams(self, user_id: str) -> UserTeamSummary:
        user = await self.store.get(user_id)
        teams = []
        for assignment in user.team_assignments:
            team = self.catalog.get_team(assignment.team_id)
            teams.append(
                UserTeamInfo(
                    team_id=team.id,
                    team_name=team.name,
                    team_description=team.description,
                    role=assignment.role,
                    assigned_at=assignment.assigned_at,
                    assigned_by=assignment.assigned_by,
                    permissions=tuple(sorted(team.permissions_for(assignment.role))),
                )
            )
        return UserTeamSummary(
            user_id=user.id,
            email=user.email,
            name=user.name,
            teams=teams,
            base_permissions=sorted(user.base_permissions),
            effective_permissions=sorted(user.effective_permissions),
            manager_of=user.manager_team_ids(),
            member_of=user.member_team_ids(),
        )

    async def get_stats(self) -> TeamStatsReport:
        users = await self.store.list_all()
        stats = [self._team_stats(team, users) for team in self.catalog.list_teams()]
        return TeamStatsReport(
            teams=stats,
            total_assignments=sum(len(user.team_assignments) for user in users),
            total_staff=len(users),
            unassigned_staff=sum(1 for user in users if not user.team_assignments),
            teams_without_members=[s.team_id for s in stats if s.total_members == 0],
        )

    async def get_team_stats(self, team_id: str) -> TeamStats:
        team = self.catalog.require_team(team_id)
        return self._team_stats(team, await self.store.list_by_team(team.id))

    async def get_team_details(self, team_id: str) -> TeamDetails:
        team = self.catalog.get_team(team_id)
        members = await self.list_members(team.id)
        managers = sum(1 for m in members if m.role == TeamRole.MANAGER)
        return TeamDetails(
            team=team,
            stats=TeamStats(
                team_id=team.id,
                name=team.name,
                manager_count=managers,
                member_count=len(members) - managers,
            ),
            members=members,
        )

    @staticmethod
    def _team_stats(team: TeamDefinition, users: list[StaffUser]) -> TeamStats:
        managers = members = 0
        for user in users:
            assignment = user.assignment_for(team.id)
            if assignment is None:
                continue
            if assignment.role == TeamRole.MANAGER:
                managers += 1
            else:
                members += 1
        return TeamStats(team_id=team.id, name=team.name, manager_count=managers, member_count=members)
