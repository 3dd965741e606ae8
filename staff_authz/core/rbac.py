"""
Authorization checks over a staff user's resolved state.

Checks read the cached effective permissions and team assignments that
the resolver maintains; they never mutate anything. Each returns the
actor when authorized and raises ``ForbiddenError`` otherwise. The error
context names what was missing; whether that reaches the caller is
decided at the request boundary.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from staff_authz.core.exceptions import ForbiddenError
from staff_authz.models.domain import StaffUser

logger = structlog.get_logger()

# Permission sets guarding the team administration API itself
VIEW_TEAMS_PERMISSIONS: tuple[str, ...] = ("user_management", "view_all_teams")
MANAGE_TEAMS_PERMISSIONS: tuple[str, ...] = ("user_management", "manage_staff_roles")
RECALCULATE_ALL_PERMISSIONS: tuple[str, ...] = ("user_management", "system_config")


def _deny(actor: StaffUser, check: str, **missing) -> ForbiddenError:
    logger.warning("Authorization denied", user_id=actor.id, check=check, **missing)
    return ForbiddenError(actor.id, **missing)


def require_permission(actor: StaffUser, permission: str) -> StaffUser:
    if permission not in actor.effective_permissions:
        raise _deny(actor, "permission", missing_permissions=[permission])
    return actor


def require_all_permissions(actor: StaffUser, permissions: Iterable[str]) -> StaffUser:
    missing = sorted(set(permissions) - actor.effective_permissions)
    if missing:
        raise _deny(actor, "all_permissions", missing_permissions=missing)
    return actor


def require_any_permission(actor: StaffUser, permissions: Iterable[str]) -> StaffUser:
    permissions = sorted(set(permissions))
    if actor.effective_permissions.isdisjoint(permissions):
        raise _deny(actor, "any_permission", required_any_of=permissions)
    return actor


def require_team_access(actor: StaffUser, team_id: str) -> StaffUser:
    if not actor.is_member_of(team_id):
        raise _deny(actor, "team_access", required_team=team_id)
    return actor


def require_team_manager(actor: StaffUser, team_id: str) -> StaffUser:
    if not actor.is_manager_of(team_id):
        raise _deny(actor, "team_manager", required_manager_of=team_id)
    return actor
