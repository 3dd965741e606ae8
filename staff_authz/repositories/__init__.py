"""
Staff user stores
"""

from staff_authz.repositories.base import StaffUserStore
from staff_authz.repositories.memory import InMemoryStaffUserStore
from staff_authz.repositories.staff_user import SQLAlchemyStaffUserStore

__all__ = [
    "InMemoryStaffUserStore",
    "SQLAlchemyStaffUserStore",
    "StaffUserStore",
]
