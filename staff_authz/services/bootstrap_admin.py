"""
Bootstrap staff admin creation service.
"""

from __future__ import annotations

import structlog

from staff_authz.core.config import settings
from staff_authz.core.permission_resolver import PermissionResolver
from staff_authz.models.domain import StaffUser

logger = structlog.get_logger()

BOOTSTRAP_ADMIN_PERMISSIONS = frozenset({"user_management", "system_config"})


async def ensure_bootstrap_admin_exists(resolver: PermissionResolver) -> StaffUser | None:
    """
    Create the first staff administrator if it is missing, so the team
    API can be operated on an empty store. Existing users are left as is.
    """
    admin_id = (settings.BOOTSTRAP_ADMIN_ID or "").strip()
    if not admin_id:
        logger.info("Bootstrap admin disabled")
        return None

    store = resolver.store
    if await store.exists(admin_id):
        logger.info("Bootstrap admin already exists", user_id=admin_id)
        return None

    base = resolver.catalog.validate_permissions(BOOTSTRAP_ADMIN_PERMISSIONS)
    admin = StaffUser(
        id=admin_id,
        email=settings.BOOTSTRAP_ADMIN_EMAIL.lower().strip(),
        name=settings.BOOTSTRAP_ADMIN_NAME,
        base_permissions=base,
        effective_permissions=resolver.compute(base, ()),
    )
    stored = await store.add(admin)

    logger.info("Bootstrap admin created", user_id=stored.id, permissions=sorted(stored.effective_permissions))
    return stored
