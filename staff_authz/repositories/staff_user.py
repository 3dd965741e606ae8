"""
Staff User Repository
SQLAlchemy-backed staff user store.
"""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from staff_authz.core.exceptions import ConcurrentModificationError, UnknownUserError
from staff_authz.models.domain import StaffUser, TeamAssignment
from staff_authz.models.staff_user import StaffUserModel
from staff_authz.repositories.base import StaffUserStore

logger = structlog.get_logger()


def _to_domain(row: StaffUserModel) -> StaffUser:
    return StaffUser(
        id=row.id,
        base_permissions=frozenset(row.base_permissions or []),
        team_assignments=tuple(TeamAssignment.from_dict(a) for a in (row.team_assignments or [])),
        effective_permissions=frozenset(row.effective_permissions or []),
        version=row.version,
        email=row.email,
        name=row.name,
        updated_at=row.updated_at,
    )


def _row_values(user: StaffUser) -> dict:
    return {
        "email": user.email,
        "name": user.name,
        "base_permissions": sorted(user.base_permissions),
        "team_assignments": [a.to_dict() for a in user.team_assignments],
        "effective_permissions": sorted(user.effective_permissions),
        "team_count": len(user.team_assignments),
    }


class SQLAlchemyStaffUserStore(StaffUserStore):
    """
    Each call runs in its own session so that bulk units never share a
    session across concurrent tasks.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def get(self, user_id: str) -> StaffUser:
        async with self._session_factory() as db:
            row = await db.get(StaffUserModel, user_id)
            if row is None:
                logger.debug("Staff user not found", user_id=user_id)
                raise UnknownUserError(user_id)
            return _to_domain(row)

    async def add(self, user: StaffUser) -> StaffUser:
        async with self._session_factory() as db:
            row = StaffUserModel(id=user.id, version=user.version, **_row_values(user))
            db.add(row)
            await db.commit()
            await db.refresh(row)
            logger.info("Staff user added", user_id=user.id)
            return _to_domain(row)

    async def put(self, user: StaffUser, expected_version: int) -> StaffUser:
        async with self._session_factory() as db:
            try:
                stmt = (
                    update(StaffUserModel)
                    .where(
                        StaffUserModel.id == user.id,
                        StaffUserModel.version == expected_version,
                    )
                    .values(version=expected_version + 1, **_row_values(user))
                )
                result = await db.execute(stmt)

                if result.rowcount == 0:
                    await db.rollback()
                    exists = await db.get(StaffUserModel, user.id)
                    if exists is None:
                        raise UnknownUserError(user.id)
                    logger.warning(
                        "Stale staff user version",
                        user_id=user.id,
                        expected_version=expected_version,
                        stored_version=exists.version,
                    )
                    raise ConcurrentModificationError(user.id, expected_version)

                await db.commit()
            except (UnknownUserError, ConcurrentModificationError):
                raise
            except Exception as e:
                await db.rollback()
                logger.error("Error persisting staff user", user_id=user.id, error=str(e))
                raise

            row = await db.get(StaffUserModel, user.id, populate_existing=True)
            return _to_domain(row)

    async def list_all(self) -> list[StaffUser]:
        return await self._select()

    async def list_unassigned(self) -> list[StaffUser]:
        return await self._select(team_count=0)

    async def exists(self, user_id: str) -> bool:
        async with self._session_factory() as db:
            query = select(func.count(StaffUserModel.id)).where(StaffUserModel.id == user_id)
            return ((await db.execute(query)).scalar() or 0) > 0

    async def _select(self, team_count: Optional[int] = None) -> list[StaffUser]:
        async with self._session_factory() as db:
            query = select(StaffUserModel).order_by(StaffUserModel.id)
            if team_count is not None:
                query = query.where(StaffUserModel.team_count == team_count)
            result = await db.execute(query)
            return [_to_domain(row) for row in result.scalars().all()]
