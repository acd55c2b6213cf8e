from typing import Optional

from pydantic import BaseModel, Field

from app.core.enums import SponsorStatus


class StudentRegister(BaseModel):
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    year_of_study: int = Field(..., ge=1)
    subject: str = Field(..., min_length=1, max_length=100)


class StudentResponse(BaseModel):
    id: str
    name: str
    year_of_study: int
    subject: str


class SponsorRegister(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    company_name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    position: Optional[str] = Field(None, max_length=255)


class SponsorResponse(BaseModel):
    id: str
    name: str
    company_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    status: SponsorStatus
