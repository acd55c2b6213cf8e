"""Sponsor (company representative) account: status Pending until staff approve or reject."""

from datetime import datetime

from sqlalchemy import Column, DateTime, String

from app.db.session import Base


SPONSOR_STATUS_PENDING = "Pending"


class SponsorRecord(Base):
    __tablename__ = "sponsors"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    company_name = Column(String(255), nullable=False)
    department = Column(String(255), nullable=True)
    position = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=SPONSOR_STATUS_PENDING)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
