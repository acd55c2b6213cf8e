"""
Audit log for opportunity, application and sponsor state changes. Every change is logged,
including deletions (the audit row outlives the entity).
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from app.db.session import Base


class PlacementAuditLog(Base):
    __tablename__ = "placement_audit_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(100), nullable=False, index=True)
    from_status = Column(String(50), nullable=True)
    to_status = Column(String(50), nullable=True)
    action = Column(String(100), nullable=False)
    performed_by = Column(String(64), nullable=True)
    performed_by_role = Column(String(50), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)
    remarks = Column(Text, nullable=True)
