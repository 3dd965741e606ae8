"""
Staff User Model
Persisted staff authorization state
"""

from sqlalchemy import Column, Integer, String, Index
from staff_authz.core.database import Base
from staff_authz.models.base import JSONType, TimestampMixin


class StaffUserModel(Base, TimestampMixin):
    """Staff user row: base permissions, team assignments and the effective cache"""
    __tablename__ = "staff_users"

    # Stable id issued by the upstream identity provider
    id = Column(String(128), primary_key=True)
    email = Column(String(254), nullable=True, index=True)
    name = Column(String(100), nullable=True)

    base_permissions = Column(JSONType, default=list, nullable=False)
    team_assignments = Column(JSONType, default=list, nullable=False)  # list of assignment dicts
    effective_permissions = Column(JSONType, default=list, nullable=False)

    # Assignment count kept in a plain column so unassigned staff can be filtered in SQL
    team_count = Column(Integer, default=0, nullable=False, index=True)

    # Optimistic concurrency control
    version = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index('ix_staff_user_team_count_id', 'team_count', 'id'),
    )

    def __repr__(self):
        return f"<StaffUserModel(id='{self.id}', version={self.version})>"
