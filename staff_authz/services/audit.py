"""
Audit Emitter
Fire-and-forget recording of every membership and permission mutation.

Emission never blocks or fails the mutation that produced the record:
records are handed to background tasks, and a sink that raises is logged
and skipped. ``flush`` waits for in-flight records (used at shutdown and
in tests).
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Set

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from staff_authz.models.audit_log import AuditLogModel
from staff_authz.models.domain import PermissionDelta, utcnow

logger = structlog.get_logger()


class AuditAction(str, Enum):
    TEAM_ASSIGNED = "team_assigned"
    TEAM_ROLE_UPDATED = "team_role_updated"
    TEAM_REMOVED = "team_removed"
    BASE_PERMISSIONS_UPDATED = "base_permissions_updated"
    PERMISSIONS_RECALCULATED = "permissions_recalculated"


@dataclass(frozen=True)
class AuditRecord:
    actor: str
    action: AuditAction
    target_user_id: str
    before_permission_count: int
    after_permission_count: int
    timestamp: datetime = field(default_factory=utcnow)
    team_id: Optional[str] = None
    role: Optional[str] = None
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()

    @classmethod
    def for_change(
        cls,
        *,
        actor: str,
        action: AuditAction,
        target_user_id: str,
        delta: PermissionDelta,
        team_id: Optional[str] = None,
        role: Optional[str] = None,
    ) -> "AuditRecord":
        return cls(
            actor=actor,
            action=action,
            target_user_id=target_user_id,
            before_permission_count=delta.previous_count,
            after_permission_count=delta.new_count,
            team_id=team_id,
            role=role,
            added=delta.added,
            removed=delta.removed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor": self.actor,
            "action": self.action.value,
            "target_user_id": self.target_user_id,
            "team_id": self.team_id,
            "role": self.role,
            "before_permission_count": self.before_permission_count,
            "after_permission_count": self.after_permission_count,
            "added": list(self.added),
            "removed": list(self.removed),
            "timestamp": self.timestamp.isoformat(),
        }

    @property
    def digest(self) -> str:
        """SHA-256 over the canonical JSON form, for tamper evidence."""
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class AuditSink(ABC):
    @abstractmethod
    async def emit(self, record: AuditRecord) -> None:
        raise NotImplementedError


class LogAuditSink(AuditSink):
    def __init__(self):
        self._logger = structlog.get_logger("staff_authz.audit")

    async def emit(self, record: AuditRecord) -> None:
        self._logger.info("Audit record", digest=record.digest, **record.to_dict())


class InMemoryAuditSink(AuditSink):
    def __init__(self):
        self.records: list[AuditRecord] = []

    async def emit(self, record: AuditRecord) -> None:
        self.records.append(record)

    def actions(self) -> list[AuditAction]:
        return [record.action for record in self.records]


class DatabaseAuditSink(AuditSink):
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def emit(self, record: AuditRecord) -> None:
        async with self._session_factory() as db:
            db.add(
                AuditLogModel(
                    actor=record.actor,
                    action=record.action.value,
                    target_user_id=record.target_user_id,
                    team_id=record.team_id,
                    role=record.role,
                    before_permission_count=record.before_permission_count,
                    after_permission_count=record.after_permission_count,
                    added=list(record.added),
                    removed=list(record.removed),
                    timestamp=record.timestamp,
                    digest=record.digest,
                )
            )
            await db.commit()


class AuditEmitter:
    def __init__(self, sinks: Iterable[AuditSink]):
        self._sinks = list(sinks)
        self._pending: Set[asyncio.Task] = set()

    def emit(self, record: AuditRecord) -> None:
        task = asyncio.create_task(self._deliver(record))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, record: AuditRecord) -> None:
        for sink in self._sinks:
            try:
                await sink.emit(record)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "Failed to emit audit record",
                    sink=type(sink).__name__,
                    action=record.action.value,
                    target_user_id=record.target_user_id,
                    error=str(exc),
                )

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending(self) -> int:
        return len(self._pending)
