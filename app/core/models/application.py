"""Student application for an opportunity. One row per (student, opportunity)."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import backref, relationship

from app.db.session import Base


APPLICATION_STATUS_PENDING = "Pending"


class ApplicationRecord(Base):
    __tablename__ = "applications"

    student_id = Column(String(64), ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    opportunity_id = Column(String(20), ForeignKey("opportunities.id", ondelete="CASCADE"), primary_key=True)
    status = Column(String(20), nullable=False, default=APPLICATION_STATUS_PENDING)
    withdrawal_requested = Column(Boolean, nullable=False, default=False)
    sequence = Column(Integer, nullable=False, index=True)
    submitted_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship(
        "StudentRecord",
        backref=backref("applications", passive_deletes=True),
        foreign_keys=[student_id],
    )
    opportunity = relationship(
        "OpportunityRecord",
        backref=backref("applications", passive_deletes=True),
        foreign_keys=[opportunity_id],
    )
