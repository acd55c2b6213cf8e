from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String

from app.db.session import Base


class StudentRecord(Base):
    __tablename__ = "students"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    year_of_study = Column(Integer, nullable=False)
    subject = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
