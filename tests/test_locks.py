"""
Tests for the per-key asyncio lock registry.
"""

import asyncio

import pytest

from staff_authz.core.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialised():
    locks = KeyedLock()
    events = []

    async def unit(name):
        async with locks.hold("alice"):
            events.append(f"{name}-start")
            await asyncio.sleep(0.01)
            events.append(f"{name}-end")

    await asyncio.gather(unit("one"), unit("two"))

    assert events == ["one-start", "one-end", "two-start", "two-end"]


@pytest.mark.asyncio
async def test_different_keys_run_in_parallel():
    locks = KeyedLock()
    inside = []
    overlap = []

    async def unit(key):
        async with locks.hold(key):
            inside.append(key)
            await asyncio.sleep(0.01)
            overlap.append(len(inside))
            inside.remove(key)

    await asyncio.gather(unit("alice"), unit("bob"))

    assert max(overlap) == 2


@pytest.mark.asyncio
async def test_locks_are_released_after_use():
    locks = KeyedLock()

    async with locks.hold("alice"):
        assert len(locks) == 1

    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold("alice"):
            raise RuntimeError("boom")

    assert len(locks) == 0
    async with locks.hold("alice"):
        pass
