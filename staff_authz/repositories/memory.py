"""
In-memory staff user store for development and tests.
"""

from __future__ import annotations

from typing import Dict, Iterable

import structlog

from staff_authz.core.exceptions import ConcurrentModificationError, UnknownUserError
from staff_authz.models.domain import StaffUser, utcnow
from staff_authz.repositories.base import StaffUserStore

logger = structlog.get_logger()


class InMemoryStaffUserStore(StaffUserStore):
    def __init__(self, users: Iterable[StaffUser] = ()):
        self._users: Dict[str, StaffUser] = {}
        for user in users:
            self._users[user.id] = user.copy()

    async def get(self, user_id: str) -> StaffUser:
        user = self._users.get(user_id)
        if user is None:
            raise UnknownUserError(user_id)
        # Callers get a snapshot; only put() changes stored state
        return user.copy()

    async def add(self, user: StaffUser) -> StaffUser:
        if user.id in self._users:
            raise ValueError(f"Staff user already exists: {user.id}")
        stored = user.copy(updated_at=utcnow())
        self._users[user.id] = stored
        logger.debug("Staff user added", user_id=user.id)
        return stored.copy()

    async def put(self, user: StaffUser, expected_version: int) -> StaffUser:
        current = self._users.get(user.id)
        if current is None:
            raise UnknownUserError(user.id)
        if current.version != expected_version:
            raise ConcurrentModificationError(user.id, expected_version)

        stored = user.copy(version=expected_version + 1, updated_at=utcnow())
        self._users[user.id] = stored
        return stored.copy()

    async def list_all(self) -> list[StaffUser]:
        return [user.copy() for user in self._users.values()]

    async def list_unassigned(self) -> list[StaffUser]:
        return [user.copy() for user in self._users.values() if not user.team_assignments]

    async def exists(self, user_id: str) -> bool:
        return user_id in self._users
