"""
Staff user store seam.

The engine never talks to a database directly; it reads and writes staff
users through this interface. ``put`` is a compare-and-swap on
``StaffUser.version`` so concurrent writers in other processes cannot
silently overwrite each other.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from staff_authz.models.domain import StaffUser


class StaffUserStore(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> StaffUser:
        """Return the user or raise ``UnknownUserError``."""
        raise NotImplementedError

    @abstractmethod
    async def add(self, user: StaffUser) -> StaffUser:
        raise NotImplementedError

    @abstractmethod
    async def put(self, user: StaffUser, expected_version: int) -> StaffUser:
        """
        Persist assignments and the effective cache together.

        Raises ``ConcurrentModificationError`` when the stored version is no
        longer ``expected_version``. Returns the stored user with its new
        version.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_all(self) -> list[StaffUser]:
        raise NotImplementedError

    @abstractmethod
    async def list_unassigned(self) -> list[StaffUser]:
        """Staff users with zero team assignments."""
        raise NotImplementedError

    async def list_by_team(self, team_id: str) -> list[StaffUser]:
        return [user for user in await self.list_all() if user.is_member_of(team_id)]

    async def exists(self, user_id: str) -> bool:
        return user_id in {user.id for user in await self.list_all()}
