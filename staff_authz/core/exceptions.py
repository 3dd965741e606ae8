"""
Error taxonomy for the staff authorization engine.

Every error carries a machine readable ``code``, the HTTP status the API
layer maps it to, and a ``context`` dict (``user_id``, ``team_id``,
``current_role`` ...) so callers can decide how to retry or report.
"""

from __future__ import annotations

from typing import Any


class StaffAuthzError(Exception):
    code = "staff_authz_error"
    status_code = 500

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "details": self.context}


# Validation: rejected before any mutation

class ValidationError(StaffAuthzError):
    code = "validation_error"
    status_code = 400


class InvalidTeamIdError(ValidationError):
    code = "invalid_team_id"

    def __init__(self, team_id: Any):
        super().__init__(f"Invalid team ID: {team_id!r}", team_id=str(team_id))


class InvalidRoleError(ValidationError):
    code = "invalid_role"

    def __init__(self, role: Any):
        super().__init__(f'Invalid role {role!r}. Must be "manager" or "member"', role=str(role))


class InvalidPermissionError(ValidationError):
    code = "invalid_permission"

    def __init__(self, permissions: list[str]):
        super().__init__(f"Unknown permissions: {sorted(permissions)}", permissions=sorted(permissions))


class EmptyUserIdListError(ValidationError):
    code = "empty_user_id_list"

    def __init__(self):
        super().__init__("At least one user ID is required")


class BulkLimitExceededError(ValidationError):
    code = "bulk_limit_exceeded"

    def __init__(self, requested: int, limit: int):
        super().__init__(
            f"Bulk request of {requested} users exceeds the limit of {limit}",
            requested=requested,
            limit=limit,
        )


# Conflict: depends on current state

class ConflictError(StaffAuthzError):
    code = "conflict"
    status_code = 409


class DuplicateAssignmentError(ConflictError):
    code = "duplicate_assignment"

    def __init__(self, user_id: str, team_id: str, current_role: str, team_name: str | None = None):
        super().__init__(
            f"User is already assigned to {team_name or team_id}",
            user_id=user_id,
            team_id=team_id,
            current_role=current_role,
        )


class NotAssignedError(ConflictError):
    code = "not_assigned"

    def __init__(self, user_id: str, team_id: str):
        super().__init__("User is not a member of this team", user_id=user_id, team_id=team_id)


class RoleUnchangedError(ConflictError):
    code = "role_unchanged"

    def __init__(self, user_id: str, team_id: str, current_role: str):
        super().__init__(
            "User already has this role in the team",
            user_id=user_id,
            team_id=team_id,
            current_role=current_role,
        )


class ConcurrentModificationError(ConflictError):
    code = "concurrent_modification"

    def __init__(self, user_id: str, expected_version: int):
        super().__init__(
            "Staff user was modified concurrently; reload and retry",
            user_id=user_id,
            expected_version=expected_version,
        )


# Not found

class NotFoundError(StaffAuthzError):
    code = "not_found"
    status_code = 404


class UnknownUserError(NotFoundError):
    code = "unknown_user"

    def __init__(self, user_id: str):
        super().__init__("Staff user not found", user_id=user_id)


class UnknownTeamError(NotFoundError):
    code = "unknown_team"

    def __init__(self, team_id: str):
        super().__init__("Team not found", team_id=str(team_id))


# Authorization

class AuthorizationError(StaffAuthzError):
    code = "forbidden"
    status_code = 403


class ForbiddenError(AuthorizationError):
    def __init__(self, actor_id: str, **missing: Any):
        super().__init__("Insufficient permissions", actor_id=actor_id, **missing)
