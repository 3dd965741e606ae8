"""
Tests for the FastAPI authorization dependency factories.
"""

import pytest
from fastapi import HTTPException

from staff_authz.core import deps
from staff_authz.core.config import settings
from staff_authz.core.exceptions import ForbiddenError


def test_permission_list_factories_require_permissions():
    with pytest.raises(ValueError):
        deps.require_all_permissions([])
    with pytest.raises(ValueError):
        deps.require_any_permission([])


def test_forbidden_hides_details_by_default(monkeypatch):
    monkeypatch.setattr(settings, "AUTHZ_DISCLOSE_MISSING_PERMISSIONS", False)

    exc = deps._forbidden(ForbiddenError("alice", missing_permissions=["system_config"]))

    assert isinstance(exc, HTTPException)
    assert exc.status_code == 403
    assert exc.detail == "Not enough permissions"


def test_forbidden_discloses_when_enabled(monkeypatch):
    monkeypatch.setattr(settings, "AUTHZ_DISCLOSE_MISSING_PERMISSIONS", True)

    exc = deps._forbidden(ForbiddenError("alice", required_team="sales"))

    assert exc.detail == {"message": "Insufficient permissions", "required_team": "sales"}
