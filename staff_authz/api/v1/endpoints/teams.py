"""Team management endpoints (staff administration)."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, status

from staff_authz.core.deps import (
    get_membership_service,
    get_permission_resolver,
    require_all_permissions,
    require_any_permission,
    require_permission,
    require_team_access,
    require_team_manager,
)
from staff_authz.core.permission_resolver import PermissionResolver
from staff_authz.core.rbac import (
    MANAGE_TEAMS_PERMISSIONS,
    RECALCULATE_ALL_PERMISSIONS,
    VIEW_TEAMS_PERMISSIONS,
)
from staff_authz.models.domain import StaffUser
from staff_authz.schemas.teams import (
    BasePermissionsUpdateRequest,
    BulkAssignRequest,
    BulkAssignResponse,
    BulkRecalculationResponse,
    MembershipChangeResponse,
    PermissionDeltaResponse,
    RecalculationResponse,
    StaffUserSummaryResponse,
    TeamAssignRequest,
    TeamDetailsResponse,
    TeamListResponse,
    TeamMemberResponse,
    TeamMembersResponse,
    TeamRemoveRequest,
    TeamResponse,
    TeamRoleUpdateRequest,
    TeamStatsReportResponse,
    TeamStatsResponse,
    UnassignedStaffResponse,
    UserTeamsResponse,
)
from staff_authz.services.team_membership import TeamMembershipService

logger = structlog.get_logger()
router = APIRouter()

can_view_teams = require_any_permission(list(VIEW_TEAMS_PERMISSIONS))
can_manage_teams = require_any_permission(list(MANAGE_TEAMS_PERMISSIONS))


# ==================== Catalog and reporting ====================

@router.get("/", response_model=TeamListResponse)
async def list_teams(
    current_user: StaffUser = Depends(can_view_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """List every team in the catalog with its member and manager permissions."""
    teams = service.catalog.list_teams()
    return TeamListResponse(
        teams=[TeamResponse.from_definition(team) for team in teams],
        count=len(teams),
        catalog_version=service.catalog.version,
    )


@router.get("/stats", response_model=TeamStatsReportResponse)
async def get_team_stats_report(
    current_user: StaffUser = Depends(can_view_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Per-team member counts plus staff-wide totals."""
    return TeamStatsReportResponse.from_report(await service.get_stats())


@router.get("/unassigned", response_model=UnassignedStaffResponse)
async def list_unassigned_staff(
    current_user: StaffUser = Depends(require_permission("user_management")),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Staff users with no team assignment."""
    users = await service.list_unassigned()
    return UnassignedStaffResponse(
        users=[StaffUserSummaryResponse.from_user(user) for user in users],
        count=len(users),
    )


@router.get("/users/{user_id}", response_model=UserTeamsResponse)
async def get_user_teams(
    user_id: str,
    current_user: StaffUser = Depends(can_view_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """A staff user's teams, roles and resulting permissions."""
    return UserTeamsResponse.from_summary(await service.get_user_teams(user_id))


# ==================== Assignments ====================

@router.post("/assign", response_model=MembershipChangeResponse, status_code=status.HTTP_201_CREATED)
async def assign_to_team(
    request: TeamAssignRequest,
    current_user: StaffUser = Depends(can_manage_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Assign a staff user to a team."""
    change = await service.assign(request.user_id, request.team_id, request.role, actor=current_user.id)
    return MembershipChangeResponse.from_change(change, "Staff user assigned to team")


@router.put("/assign/role", response_model=MembershipChangeResponse)
async def update_team_role(
    request: TeamRoleUpdateRequest,
    current_user: StaffUser = Depends(can_manage_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Change a staff user's role within a team."""
    change = await service.update_role(request.user_id, request.team_id, request.role, actor=current_user.id)
    return MembershipChangeResponse.from_change(change, "Team role updated")


@router.post("/remove", response_model=MembershipChangeResponse)
async def remove_from_team(
    request: TeamRemoveRequest,
    current_user: StaffUser = Depends(can_manage_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Remove a staff user from a team."""
    change = await service.remove(request.user_id, request.team_id, actor=current_user.id)
    return MembershipChangeResponse.from_change(change, "Staff user removed from team")


@router.post("/bulk-assign", response_model=BulkAssignResponse)
async def bulk_assign_to_team(
    request: BulkAssignRequest,
    current_user: StaffUser = Depends(can_manage_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Assign many staff users to one team; each user succeeds or fails on its own."""
    result = await service.bulk_assign(request.user_ids, request.team_id, request.role, actor=current_user.id)
    return BulkAssignResponse.from_result(result)


@router.put("/users/{user_id}/base-permissions", response_model=PermissionDeltaResponse)
async def update_base_permissions(
    user_id: str,
    request: BasePermissionsUpdateRequest,
    current_user: StaffUser = Depends(can_manage_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Replace a staff user's directly granted permissions."""
    delta = await service.update_base_permissions(user_id, request.permissions, actor=current_user.id)
    return PermissionDeltaResponse.from_delta(delta)


# ==================== Recalculation ====================

@router.post("/users/{user_id}/recalculate", response_model=RecalculationResponse)
async def recalculate_user_permissions(
    user_id: str,
    current_user: StaffUser = Depends(can_manage_teams),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> Any:
    """Rebuild one staff user's effective permissions from their sources."""
    delta = await resolver.recalculate(user_id, actor=current_user.id)
    return RecalculationResponse(
        user_id=user_id,
        success=True,
        permission_changes=PermissionDeltaResponse.from_delta(delta),
    )


@router.post("/recalculate-all", response_model=BulkRecalculationResponse)
async def recalculate_all_permissions(
    current_user: StaffUser = Depends(require_all_permissions(list(RECALCULATE_ALL_PERMISSIONS))),
    resolver: PermissionResolver = Depends(get_permission_resolver),
) -> Any:
    """Rebuild every staff user's effective permissions, e.g. after a catalog change."""
    logger.info("Recalculate-all requested", requested_by=current_user.id)
    return BulkRecalculationResponse.from_result(await resolver.recalculate_all(actor=current_user.id))


# ==================== Single team ====================

@router.get("/{team_id}", response_model=TeamDetailsResponse)
async def get_team_details(
    team_id: str,
    current_user: StaffUser = Depends(can_view_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Team definition, counts and current members."""
    return TeamDetailsResponse.from_details(await service.get_team_details(team_id))


@router.get("/{team_id}/members", response_model=TeamMembersResponse)
async def list_team_members(
    team_id: str,
    current_user: StaffUser = Depends(can_view_teams),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Members of a team with their roles."""
    members = await service.list_members(team_id)
    return TeamMembersResponse(
        team_id=team_id,
        members=[TeamMemberResponse.from_member(m) for m in members],
        count=len(members),
    )


@router.get("/{team_id}/roster", response_model=TeamMembersResponse)
async def get_team_roster(
    team_id: str,
    current_user: StaffUser = Depends(require_team_access()),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Teammates of the caller; open to anyone assigned to the team."""
    members = await service.list_members(team_id)
    return TeamMembersResponse(
        team_id=team_id,
        members=[TeamMemberResponse.from_member(m) for m in members],
        count=len(members),
    )


@router.get("/{team_id}/stats", response_model=TeamStatsResponse)
async def get_team_stats(
    team_id: str,
    current_user: StaffUser = Depends(require_team_manager()),
    service: TeamMembershipService = Depends(get_membership_service),
) -> Any:
    """Member counts for one team; managers of that team only."""
    return TeamStatsResponse.from_stats(await service.get_team_stats(team_id))
