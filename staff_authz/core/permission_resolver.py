"""
Permission resolver.

``compute_effective_permissions`` is the single definition of a staff
user's effective permission set:

    base_permissions | union(team permissions for each assignment's role)

``PermissionResolver`` applies it to stored users: it rebuilds the cached
effective set for the membership manager and repairs drift on demand via
``recalculate`` / ``recalculate_all``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Iterable, Optional

import structlog

from staff_authz.core.config import settings
from staff_authz.core.exceptions import StaffAuthzError
from staff_authz.core.locks import KeyedLock
from staff_authz.core.team_catalog import TeamCatalog, get_team_catalog
from staff_authz.models.domain import PermissionDelta, StaffUser, TeamAssignment
from staff_authz.repositories.base import StaffUserStore
from staff_authz.services.audit import AuditAction, AuditEmitter, AuditRecord

logger = structlog.get_logger()

SYSTEM_ACTOR = "system"


def compute_effective_permissions(
    base_permissions: Iterable[str],
    assignments: Iterable[TeamAssignment],
    catalog: TeamCatalog,
) -> frozenset[str]:
    """Deduplicated union of base and team-contributed permissions; order independent."""
    effective = set(base_permissions)
    for assignment in assignments:
        effective |= catalog.get_team(assignment.team_id).permissions_for(assignment.role)
    return frozenset(effective)


@dataclass(frozen=True)
class RecalculationResult:
    user_id: str
    success: bool
    delta: Optional[PermissionDelta] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class BulkRecalculationResult:
    total: int = 0
    processed: int = 0
    failed: int = 0
    results: list[RecalculationResult] = field(default_factory=list)

    @property
    def changed(self) -> int:
        return sum(1 for r in self.results if r.delta is not None and r.delta.changed)


class PermissionResolver:
    def __init__(
        self,
        store: StaffUserStore,
        catalog: Optional[TeamCatalog] = None,
        locks: Optional[KeyedLock] = None,
        audit: Optional[AuditEmitter] = None,
        concurrency: Optional[int] = None,
    ):
        self.store = store
        self._catalog = catalog
        self.locks = locks or KeyedLock()
        self.audit = audit
        self.concurrency = concurrency or settings.BULK_CONCURRENCY

    @property
    def catalog(self) -> TeamCatalog:
        # Without a pinned catalog, follow the process-wide one across reloads
        return self._catalog or get_team_catalog()

    def compute(
        self,
        base_permissions: Iterable[str],
        assignments: Iterable[TeamAssignment],
    ) -> frozenset[str]:
        return compute_effective_permissions(base_permissions, assignments, self.catalog)

    def rebuild(
        self,
        user: StaffUser,
        *,
        base_permissions: Optional[frozenset[str]] = None,
        assignments: Optional[tuple[TeamAssignment, ...]] = None,
    ) -> tuple[StaffUser, PermissionDelta]:
        """
        Return a copy of *user* with the given sources applied and the
        effective cache recomputed, plus the delta against the old cache.
        """
        base = user.base_permissions if base_permissions is None else base_permissions
        teams = user.team_assignments if assignments is None else assignments
        effective = self.compute(base, teams)
        updated = user.copy(
            base_permissions=frozenset(base),
            team_assignments=tuple(teams),
            effective_permissions=effective,
        )
        return updated, PermissionDelta.between(user.effective_permissions, effective)

    async def recalculate(self, user_id: str, actor: str = SYSTEM_ACTOR) -> PermissionDelta:
        """Recompute and persist one user's effective permissions. Idempotent."""
        async with self.locks.hold(user_id):
            user = await self.store.get(user_id)
            updated, delta = self.rebuild(user)

            if not delta.changed:
                logger.debug("Permissions already consistent", user_id=user_id, permission_count=delta.new_count)
                return delta

            await self.store.put(updated, expected_version=user.version)

        logger.info(
            "Recalculated permissions",
            user_id=user_id,
            team_count=len(updated.team_assignments),
            previous_count=delta.previous_count,
            permission_count=delta.new_count,
            added=len(delta.added),
            removed=len(delta.removed),
        )

        if self.audit is not None:
            self.audit.emit(
                AuditRecord.for_change(
                    actor=actor,
                    action=AuditAction.PERMISSIONS_RECALCULATED,
                    target_user_id=user_id,
                    delta=delta,
                )
            )
        return delta

    async def recalculate_all(self, actor: str = SYSTEM_ACTOR) -> BulkRecalculationResult:
        """
        Recalculate every staff user. A failing user is recorded and the
        batch continues; users already written stay written.
        """
        users = await self.store.list_all()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def recalculate_one(user_id: str) -> RecalculationResult:
            async with semaphore:
                try:
                    delta = await self.recalculate(user_id, actor=actor)
                    return RecalculationResult(user_id=user_id, success=True, delta=delta)
                except StaffAuthzError as e:
                    logger.warning("Recalculation failed", user_id=user_id, error=e.message, code=e.code)
                    return RecalculationResult(user_id=user_id, success=False, error=e.message, error_code=e.code)
                except Exception as e:
                    logger.error("Unexpected recalculation failure", user_id=user_id, error=str(e))
                    return RecalculationResult(user_id=user_id, success=False, error=str(e), error_code="internal_error")

        results = await asyncio.gather(*(recalculate_one(user.id) for user in users))

        summary = BulkRecalculationResult(
            total=len(users),
            processed=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            results=list(results),
        )
        logger.info(
            "Recalculated all staff permissions",
            total=summary.total,
            processed=summary.processed,
            failed=summary.failed,
            changed=summary.changed,
            catalog_version=self.catalog.version,
        )
        return summary
