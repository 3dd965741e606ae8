"""
FastAPI Dependencies
Actor resolution, authorization gates and engine components
"""

from functools import lru_cache
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
import structlog

from staff_authz.core import rbac
from staff_authz.core.config import settings
from staff_authz.core.database import AsyncSessionLocal
from staff_authz.core.exceptions import ForbiddenError, UnknownUserError
from staff_authz.core.permission_resolver import PermissionResolver
from staff_authz.models.domain import StaffUser
from staff_authz.repositories.base import StaffUserStore
from staff_authz.repositories.staff_user import SQLAlchemyStaffUserStore
from staff_authz.services.audit import AuditEmitter, DatabaseAuditSink, LogAuditSink
from staff_authz.services.team_membership import TeamMembershipService

logger = structlog.get_logger()


# ==================== Engine components ====================

@lru_cache
def get_staff_store() -> StaffUserStore:
    return SQLAlchemyStaffUserStore(AsyncSessionLocal)


@lru_cache
def get_audit_emitter() -> AuditEmitter:
    sinks = []
    if "log" in settings.AUDIT_SINKS:
        sinks.append(LogAuditSink())
    if "database" in settings.AUDIT_SINKS:
        sinks.append(DatabaseAuditSink(AsyncSessionLocal))
    return AuditEmitter(sinks)


@lru_cache
def get_permission_resolver() -> PermissionResolver:
    return PermissionResolver(get_staff_store(), audit=get_audit_emitter())


@lru_cache
def get_membership_service() -> TeamMembershipService:
    return TeamMembershipService(get_permission_resolver(), audit=get_audit_emitter())


# ==================== Actor ====================

async def get_current_actor(
    request: Request,
    store: StaffUserStore = Depends(get_staff_store),
) -> StaffUser:
    """
    Resolve the acting staff user.

    Identity is authenticated upstream; the gateway forwards the staff id
    in ``settings.ACTOR_ID_HEADER``.
    """
    actor_id = request.headers.get(settings.ACTOR_ID_HEADER)
    if not actor_id or not actor_id.strip():
        logger.warning("Missing actor identity header", header=settings.ACTOR_ID_HEADER)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        actor = await store.get(actor_id.strip())
    except UnknownUserError:
        logger.warning("Actor is not a known staff user", user_id=actor_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Staff user not found",
        )

    logger.debug("Actor resolved", user_id=actor.id, permission_count=len(actor.effective_permissions))
    return actor


def _forbidden(exc: ForbiddenError) -> HTTPException:
    if settings.AUTHZ_DISCLOSE_MISSING_PERMISSIONS:
        detail = {"message": exc.message, **{k: v for k, v in exc.context.items() if k != "actor_id"}}
    else:
        detail = "Not enough permissions"
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def _gate(check: Callable[[StaffUser, Request], StaffUser]):
    async def authorization_checker(
        request: Request,
        actor: StaffUser = Depends(get_current_actor),
    ) -> StaffUser:
        try:
            return check(actor, request)
        except ForbiddenError as exc:
            raise _forbidden(exc)

    return authorization_checker


# ==================== Authorization gates ====================

def require_permission(permission: str):
    """Dependency factory: the actor must hold *permission*."""
    return _gate(lambda actor, request: rbac.require_permission(actor, permission))


def require_all_permissions(permissions: list[str]):
    """Dependency factory: the actor must hold every permission (AND)."""
    if not permissions:
        raise ValueError("require_all_permissions needs at least one permission")
    return _gate(lambda actor, request: rbac.require_all_permissions(actor, permissions))


def require_any_permission(permissions: list[str]):
    """Dependency factory: the actor must hold at least one permission (OR)."""
    if not permissions:
        raise ValueError("require_any_permission needs at least one permission")
    return _gate(lambda actor, request: rbac.require_any_permission(actor, permissions))


def _team_from(request: Request, team_id: Optional[str]) -> str:
    return team_id or request.path_params.get("team_id", "")


def require_team_access(team_id: Optional[str] = None):
    """
    Dependency factory: the actor must be assigned to the team, in any role.
    Without an explicit *team_id* the ``team_id`` path parameter is used.
    """
    return _gate(lambda actor, request: rbac.require_team_access(actor, _team_from(request, team_id)))


def require_team_manager(team_id: Optional[str] = None):
    """Dependency factory: the actor must be a manager of the team."""
    return _gate(lambda actor, request: rbac.require_team_manager(actor, _team_from(request, team_id)))
