"""
Tests for bootstrap staff admin creation.
"""

import pytest

from staff_authz.core.config import settings
from staff_authz.services.bootstrap_admin import ensure_bootstrap_admin_exists


@pytest.mark.asyncio
async def test_creates_admin_with_access_control_permissions(resolver, store, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_ID", "root-admin")

    created = await ensure_bootstrap_admin_exists(resolver)

    assert created.id == "root-admin"
    stored = await store.get("root-admin")
    assert stored.effective_permissions == {"user_management", "system_config"}
    assert stored.team_assignments == ()


@pytest.mark.asyncio
async def test_existing_admin_is_left_alone(resolver, store, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_ID", "alice")

    assert await ensure_bootstrap_admin_exists(resolver) is None
    assert (await store.get("alice")).effective_permissions == frozenset()


@pytest.mark.asyncio
async def test_disabled_without_admin_id(resolver, store, monkeypatch):
    monkeypatch.setattr(settings, "BOOTSTRAP_ADMIN_ID", "")

    assert await ensure_bootstrap_admin_exists(resolver) is None
    assert len(await store.list_all()) == 6
