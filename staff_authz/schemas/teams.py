"""
Team management schemas for the staff administration API.

Team ids and role names are accepted as plain strings and validated by
the engine against the team catalog, so unknown values surface as
``invalid_team_id`` / ``invalid_role`` errors rather than generic 422s.
Team ids match catalog ids exactly; role names are case-insensitive.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from staff_authz.core.permission_resolver import BulkRecalculationResult, RecalculationResult
from staff_authz.core.team_catalog import TeamDefinition
from staff_authz.models.domain import PermissionDelta, StaffUser
from staff_authz.schemas.base import BaseSchema
from staff_authz.services.team_membership import (
    BulkAssignResult,
    MembershipChange,
    TeamDetails,
    TeamMember,
    TeamStats,
    TeamStatsReport,
    UserTeamSummary,
)


def _normalize_role(value: str) -> str:
    return value.strip().lower()


# ==================== Requests ====================

class TeamAssignRequest(BaseSchema):
    user_id: str = Field(..., min_length=1, max_length=128)
    team_id: str = Field(..., min_length=1, max_length=64)
    role: str = Field(..., description='"member" or "manager"')

    normalize_role = field_validator("role")(_normalize_role)


class TeamRoleUpdateRequest(TeamAssignRequest):
    pass


class TeamRemoveRequest(BaseSchema):
    user_id: str = Field(..., min_length=1, max_length=128)
    team_id: str = Field(..., min_length=1, max_length=64)


class BulkAssignRequest(BaseSchema):
    user_ids: list[str] = Field(default_factory=list)
    team_id: str = Field(..., min_length=1, max_length=64)
    role: str = Field(..., description='"member" or "manager"')

    normalize_role = field_validator("role")(_normalize_role)

    @field_validator("user_ids")
    @classmethod
    def strip_user_ids(cls, values: list[str]) -> list[str]:
        return [v.strip() for v in values if v and v.strip()]


class BasePermissionsUpdateRequest(BaseSchema):
    permissions: list[str] = Field(default_factory=list)


# ==================== Responses ====================

class PermissionDeltaResponse(BaseSchema):
    previous_count: int
    new_count: int
    added: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)

    @classmethod
    def from_delta(cls, delta: PermissionDelta) -> "PermissionDeltaResponse":
        return cls(**delta.to_dict())


class TeamResponse(BaseSchema):
    id: str
    name: str
    description: str
    responsibilities: list[str] = Field(default_factory=list)
    member_permissions: list[str] = Field(default_factory=list)
    manager_permissions: list[str] = Field(default_factory=list)

    @classmethod
    def from_definition(cls, team: TeamDefinition) -> "TeamResponse":
        return cls(**team.to_dict())


class TeamListResponse(BaseSchema):
    teams: list[TeamResponse]
    count: int
    catalog_version: str


class TeamMemberResponse(BaseSchema):
    user_id: str
    email: Optional[str] = None
    name: str
    role: str
    assigned_at: datetime
    assigned_by: str

    @classmethod
    def from_member(cls, member: TeamMember) -> "TeamMemberResponse":
        return cls(
            user_id=member.user_id,
            email=member.email,
            name=member.name,
            role=member.role.value,
            assigned_at=member.assigned_at,
            assigned_by=member.assigned_by,
        )


class TeamMembersResponse(BaseSchema):
    team_id: str
    members: list[TeamMemberResponse]
    count: int


class TeamStatsResponse(BaseSchema):
    team_id: str
    name: str
    total_members: int
    manager_count: int
    member_count: int

    @classmethod
    def from_stats(cls, stats: TeamStats) -> "TeamStatsResponse":
        return cls(
            team_id=stats.team_id,
            name=stats.name,
            total_members=stats.total_members,
            manager_count=stats.manager_count,
            member_count=stats.member_count,
        )


class TeamStatsReportResponse(BaseSchema):
    teams: list[TeamStatsResponse]
    total_assignments: int
    total_staff: int
    unassigned_staff: int
    teams_without_members: list[str]

    @classmethod
    def from_report(cls, report: TeamStatsReport) -> "TeamStatsReportResponse":
        return cls(
            teams=[TeamStatsResponse.from_stats(s) for s in report.teams],
            total_assignments=report.total_assignments,
            total_staff=report.total_staff,
            unassigned_staff=report.unassigned_staff,
            teams_without_members=report.teams_without_members,
        )


class TeamDetailsResponse(BaseSchema):
    team: TeamResponse
    stats: TeamStatsResponse
    members: list[TeamMemberResponse]

    @classmethod
    def from_details(cls, details: TeamDetails) -> "TeamDetailsResponse":
        return cls(
            team=TeamResponse.from_definition(details.team),
            stats=TeamStatsResponse.from_stats(details.stats),
            members=[TeamMemberResponse.from_member(m) for m in details.members],
        )


class MembershipChangeResponse(BaseSchema):
    message: str
    user_id: str
    team_id: str
    role: Optional[str] = None
    previous_role: Optional[str] = None
    version: int
    permission_changes: PermissionDeltaResponse

    @classmethod
    def from_change(cls, change: MembershipChange, message: str) -> "MembershipChangeResponse":
        return cls(
            message=message,
            user_id=change.user_id,
            team_id=change.team_id,
            role=change.role.value if change.role else None,
            previous_role=change.previous_role.value if change.previous_role else None,
            version=change.version,
            permission_changes=PermissionDeltaResponse.from_delta(change.delta),
        )


class BulkAssignItemResponse(BaseSchema):
    user_id: str
    success: bool
    permission_changes: Optional[PermissionDeltaResponse] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class BulkAssignResponse(BaseSchema):
    team_id: str
    role: str
    success_count: int
    failure_count: int
    results: list[BulkAssignItemResponse]

    @classmethod
    def from_result(cls, result: BulkAssignResult) -> "BulkAssignResponse":
        return cls(
            team_id=result.team_id,
            role=result.role.value,
            success_count=result.success_count,
            failure_count=result.failure_count,
            results=[
                BulkAssignItemResponse(
                    user_id=item.user_id,
                    success=item.success,
                    permission_changes=PermissionDeltaResponse.from_delta(item.delta) if item.delta else None,
                    error=item.error,
                    error_code=item.error_code,
                )
                for item in result.results
            ],
        )


class UserTeamInfoResponse(BaseSchema):
    team_id: str
    team_name: str
    team_description: str
    role: str
    assigned_at: datetime
    assigned_by: str
    permissions: list[str]


class UserTeamsResponse(BaseSchema):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    teams: list[UserTeamInfoResponse]
    base_permissions: list[str]
    effective_permissions: list[str]
    total_permissions: int
    manager_of: list[str]
    member_of: list[str]

    @classmethod
    def from_summary(cls, summary: UserTeamSummary) -> "UserTeamsResponse":
        return cls(
            user_id=summary.user_id,
            email=summary.email,
            name=summary.name,
            teams=[
                UserTeamInfoResponse(
                    team_id=t.team_id,
                    team_name=t.team_name,
                    team_description=t.team_description,
                    role=t.role.value,
                    assigned_at=t.assigned_at,
                    assigned_by=t.assigned_by,
                    permissions=list(t.permissions),
                )
                for t in summary.teams
            ],
            base_permissions=summary.base_permissions,
            effective_permissions=summary.effective_permissions,
            total_permissions=summary.total_permissions,
            manager_of=summary.manager_of,
            member_of=summary.member_of,
        )


class StaffUserSummaryResponse(BaseSchema):
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    base_permissions: list[str]
    effective_permissions: list[str]

    @classmethod
    def from_user(cls, user: StaffUser) -> "StaffUserSummaryResponse":
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            base_permissions=sorted(user.base_permissions),
            effective_permissions=sorted(user.effective_permissions),
        )


class UnassignedStaffResponse(BaseSchema):
    users: list[StaffUserSummaryResponse]
    count: int


class RecalculationResponse(BaseSchema):
    user_id: str
    success: bool
    permission_changes: Optional[PermissionDeltaResponse] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def from_result(cls, result: RecalculationResult) -> "RecalculationResponse":
        return cls(
            user_id=result.user_id,
            success=result.success,
            permission_changes=PermissionDeltaResponse.from_delta(result.delta) if result.delta else None,
            error=result.error,
            error_code=result.error_code,
        )


class BulkRecalculationResponse(BaseSchema):
    total: int
    processed: int
    failed: int
    changed: int
    results: list[RecalculationResponse]

    @classmethod
    def from_result(cls, result: BulkRecalculationResult) -> "BulkRecalculationResponse":
        return cls(
            total=result.total,
            processed=result.processed,
            failed=result.failed,
            changed=result.changed,
            results=[RecalculationResponse.from_result(r) for r in result.results],
        )
