"""
Tests for the staff user stores against in-memory SQLite and the
in-memory implementation.
"""

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from staff_authz.core.database import build_session_factory, init_database
from staff_authz.core.exceptions import ConcurrentModificationError, UnknownUserError
from staff_authz.core.team_catalog import TeamRole
from staff_authz.models.audit_log import AuditLogModel
from staff_authz.models.domain import PermissionDelta, StaffUser, TeamAssignment, utcnow
from staff_authz.repositories.memory import InMemoryStaffUserStore
from staff_authz.repositories.staff_user import SQLAlchemyStaffUserStore
from staff_authz.services.audit import AuditAction, AuditEmitter, AuditRecord, DatabaseAuditSink


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_database(bind=engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SQLAlchemyStaffUserStore(session_factory)


def make_user(user_id="alice", **kwargs):
    return StaffUser(id=user_id, email=f"{user_id}@example.com", name=user_id.title(), **kwargs)


# ── SQLAlchemy store ────────────────────────────────────────────


@pytest.mark.asyncio
async def test_add_and_get_round_trip(sql_store):
    assignment = TeamAssignment(team_id="sales", role=TeamRole.MANAGER, assigned_at=utcnow(), assigned_by="admin")
    await sql_store.add(make_user(
        base_permissions=frozenset({"analytics_view"}),
        team_assignments=(assignment,),
        effective_permissions=frozenset({"analytics_view", "dealer_accounts"}),
    ))

    user = await sql_store.get("alice")

    assert user.base_permissions == {"analytics_view"}
    assert user.effective_permissions == {"analytics_view", "dealer_accounts"}
    assert user.version == 0
    stored = user.assignment_for("sales")
    assert stored.role == TeamRole.MANAGER
    assert stored.assigned_by == "admin"
    assert stored.assigned_at == assignment.assigned_at


@pytest.mark.asyncio
async def test_get_unknown_user(sql_store):
    with pytest.raises(UnknownUserError):
        await sql_store.get("nobody")


@pytest.mark.asyncio
async def test_put_bumps_version(sql_store):
    await sql_store.add(make_user())
    user = await sql_store.get("alice")

    stored = await sql_store.put(user.copy(base_permissions=frozenset({"A"})), expected_version=0)

    assert stored.version == 1
    assert stored.base_permissions == {"A"}
    assert (await sql_store.get("alice")).version == 1


@pytest.mark.asyncio
async def test_put_with_stale_version_is_rejected(sql_store):
    await sql_store.add(make_user())
    user = await sql_store.get("alice")
    await sql_store.put(user.copy(base_permissions=frozenset({"A"})), expected_version=0)

    with pytest.raises(ConcurrentModificationError) as exc_info:
        await sql_store.put(user.copy(base_permissions=frozenset({"B"})), expected_version=0)

    assert exc_info.value.status_code == 409
    assert (await sql_store.get("alice")).base_permissions == {"A"}


@pytest.mark.asyncio
async def test_put_unknown_user(sql_store):
    with pytest.raises(UnknownUserError):
        await sql_store.put(make_user("ghost"), expected_version=0)


@pytest.mark.asyncio
async def test_list_unassigned_and_by_team(sql_store):
    assignment = TeamAssignment(team_id="sales", role=TeamRole.MEMBER, assigned_at=utcnow(), assigned_by="admin")
    await sql_store.add(make_user("alice", team_assignments=(assignment,)))
    await sql_store.add(make_user("bob"))

    assert [u.id for u in await sql_store.list_all()] == ["alice", "bob"]
    assert [u.id for u in await sql_store.list_unassigned()] == ["bob"]
    assert [u.id for u in await sql_store.list_by_team("sales")] == ["alice"]
    assert await sql_store.exists("bob")
    assert not await sql_store.exists("carol")


# ── Database audit sink ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_database_audit_sink_persists_record(session_factory):
    emitter = AuditEmitter([DatabaseAuditSink(session_factory)])
    record = AuditRecord.for_change(
        actor="admin",
        action=AuditAction.TEAM_ASSIGNED,
        target_user_id="alice",
        delta=PermissionDelta.between(frozenset(), frozenset({"a", "b"})),
        team_id="sales",
        role="member",
    )

    emitter.emit(record)
    await emitter.flush()

    async with session_factory() as db:
        rows = (await db.execute(select(AuditLogModel))).scalars().all()
    assert len(rows) == 1
    assert rows[0].action == "team_assigned"
    assert rows[0].added == ["a", "b"]
    assert rows[0].digest == record.digest


# ── In-memory store ─────────────────────────────────────────────


@pytest.mark.asyncio
async def test_memory_store_returns_snapshots():
    store = InMemoryStaffUserStore([make_user()])

    user = await store.get("alice")
    user.base_permissions = frozenset({"A"})

    assert (await store.get("alice")).base_permissions == frozenset()


@pytest.mark.asyncio
async def test_memory_store_version_check():
    store = InMemoryStaffUserStore([make_user()])
    user = await store.get("alice")
    await store.put(user, expected_version=0)

    with pytest.raises(ConcurrentModificationError):
        await store.put(user, expected_version=0)


@pytest.mark.asyncio
async def test_memory_store_rejects_duplicate_add():
    store = InMemoryStaffUserStore([make_user()])
    with pytest.raises(ValueError):
        await store.add(make_user())
