"""
Tests for audit records and the fire-and-forget emitter.
"""

import asyncio
from dataclasses import replace

import pytest

from staff_authz.models.domain import PermissionDelta
from staff_authz.services.audit import (
    AuditAction,
    AuditEmitter,
    AuditRecord,
    AuditSink,
    InMemoryAuditSink,
    LogAuditSink,
)


class FailingSink(AuditSink):
    async def emit(self, record):
        raise RuntimeError("sink unavailable")


class SlowSink(InMemoryAuditSink):
    async def emit(self, record):
        await asyncio.sleep(0.01)
        await super().emit(record)


def make_record(**overrides):
    fields = dict(
        actor="admin",
        action=AuditAction.TEAM_ASSIGNED,
        target_user_id="alice",
        delta=PermissionDelta.between(frozenset({"a"}), frozenset({"a", "b", "c"})),
        team_id="sales",
        role="member",
    )
    fields.update(overrides)
    return AuditRecord.for_change(**fields)


def test_record_from_delta():
    record = make_record()
    assert record.before_permission_count == 1
    assert record.after_permission_count == 3
    assert record.added == ("b", "c")
    assert record.to_dict()["action"] == "team_assigned"


def test_digest_is_stable_and_content_sensitive():
    record = make_record()
    assert record.digest == replace(record).digest
    assert len(record.digest) == 64
    assert replace(record, actor="bob").digest != record.digest


@pytest.mark.asyncio
async def test_emit_does_not_block_caller():
    sink = SlowSink()
    emitter = AuditEmitter([sink])

    emitter.emit(make_record())

    assert sink.records == []
    assert emitter.pending == 1
    await emitter.flush()
    assert len(sink.records) == 1
    assert emitter.pending == 0


@pytest.mark.asyncio
async def test_failing_sink_does_not_stop_other_sinks():
    memory = InMemoryAuditSink()
    emitter = AuditEmitter([FailingSink(), LogAuditSink(), memory])

    emitter.emit(make_record())
    await emitter.flush()

    assert memory.actions() == [AuditAction.TEAM_ASSIGNED]
