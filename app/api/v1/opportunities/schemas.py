from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import OpportunityLevel, OpportunityStatus


class OpportunityCreate(BaseModel):
    """Slot count and date order are validated by the engine (1-10 slots, opening <= closing)."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=5000)
    level: str = Field(..., description="Basic, Intermediate or Advanced")
    target_subject: str = Field(..., min_length=1, max_length=100, description="Student subject, or 'All'")
    opening_date: date
    closing_date: date
    slots: int


class OpportunityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    level: Optional[str] = None
    target_subject: Optional[str] = Field(None, min_length=1, max_length=100)
    opening_date: Optional[date] = None
    closing_date: Optional[date] = None
    slots: Optional[int] = None


class OpportunityResponse(BaseModel):
    id: str
    title: str
    description: str
    level: OpportunityLevel
    target_subject: str
    opening_date: date
    closing_date: date
    sponsor_id: str
    sponsor_name: str
    slots: int
    status: OpportunityStatus
    visible: bool
    application_count: int = 0
    accepted_count: int = 0


class FilterCriteriaResponse(BaseModel):
    level: Optional[OpportunityLevel] = None
    subject: Optional[str] = None
    status: Optional[OpportunityStatus] = None
    closing_by: Optional[date] = None
