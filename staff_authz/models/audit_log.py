"""
Audit Log Model
Persisted membership and permission mutations
"""

from sqlalchemy import Column, DateTime, Integer, String, Index
from staff_authz.core.database import Base
from staff_authz.models.base import JSONType, UUIDMixin


class AuditLogModel(Base, UUIDMixin):
    """One row per emitted audit record"""
    __tablename__ = "staff_audit_logs"

    actor = Column(String(128), nullable=False, index=True)
    action = Column(String(64), nullable=False, index=True)
    target_user_id = Column(String(128), nullable=False, index=True)
    team_id = Column(String(64), nullable=True)
    role = Column(String(16), nullable=True)
    before_permission_count = Column(Integer, nullable=False)
    after_permission_count = Column(Integer, nullable=False)
    added = Column(JSONType, default=list, nullable=False)
    removed = Column(JSONType, default=list, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    digest = Column(String(64), nullable=False)

    __table_args__ = (
        Index('ix_staff_audit_target_timestamp', 'target_user_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<AuditLogModel(action='{self.action}', target_user_id='{self.target_user_id}')>"
