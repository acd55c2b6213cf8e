from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import ApplicationStatus


class ApplicationSubmit(BaseModel):
    opportunity_id: str = Field(..., min_length=1)


class ApplicationDecision(BaseModel):
    outcome: str = Field(..., description="Successful or Unsuccessful")


class ApplicationResponse(BaseModel):
    student_id: str
    opportunity_id: str
    opportunity_title: Optional[str] = None
    status: ApplicationStatus
    withdrawal_requested: bool
    submitted_at: datetime
