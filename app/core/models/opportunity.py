"""
Internship opportunity posted by a sponsor. Status and visibility are mutable;
slots are fixed at creation. Applicant order is derived from applications.sequence.
"""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import backref, relationship

from app.db.session import Base


OPPORTUNITY_STATUS_PENDING = "Pending"


class OpportunityRecord(Base):
    __tablename__ = "opportunities"

    id = Column(String(20), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    level = Column(String(20), nullable=False)
    target_subject = Column(String(100), nullable=False)
    opening_date = Column(Date, nullable=False)
    closing_date = Column(Date, nullable=False)
    sponsor_id = Column(String(64), ForeignKey("sponsors.id", ondelete="RESTRICT"), nullable=False, index=True)
    sponsor_name = Column(String(255), nullable=False)
    slots = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=OPPORTUNITY_STATUS_PENDING)
    visible = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    sponsor = relationship(
        "SponsorRecord",
        backref=backref("opportunities", passive_deletes=True),
        foreign_keys=[sponsor_id],
    )
