"""
Staff authorization models
"""

from staff_authz.models.audit_log import AuditLogModel
from staff_authz.models.domain import StaffUser, TeamAssignment
from staff_authz.models.staff_user import StaffUserModel

__all__ = [
    "AuditLogModel",
    "StaffUser",
    "StaffUserModel",
    "TeamAssignment",
]
