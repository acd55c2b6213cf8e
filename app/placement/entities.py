"""
Placement entities. Managers own and mutate them; everything handed out of a
manager is a snapshot, so callers never hold a live reference.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import List, Optional, Tuple

from app.core.enums import (
    ACTIVE_APPLICATION_STATUSES,
    ApplicationStatus,
    OpportunityLevel,
    OpportunityStatus,
    SponsorStatus,
    UserRole,
)

# (student_id, opportunity_id)
ApplicationKey = Tuple[str, str]


@dataclass(frozen=True)
class Actor:
    """The caller of a manager method: who they are and in which capacity."""

    user_id: str
    role: UserRole


@dataclass
class Student:
    id: str
    name: str
    year_of_study: int
    subject: str

    def snapshot(self) -> "Student":
        return replace(self)


@dataclass
class Sponsor:
    id: str
    name: str
    company_name: str
    department: Optional[str] = None
    position: Optional[str] = None
    status: SponsorStatus = SponsorStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == SponsorStatus.APPROVED

    def snapshot(self) -> "Sponsor":
        return replace(self)


@dataclass
class Opportunity:
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
    status: OpportunityStatus = OpportunityStatus.PENDING
    visible: bool = False
    # Student ids of applications against this posting, in submission order
    applicant_ids: List[str] = field(default_factory=list)

    def is_open_on(self, today: date) -> bool:
        return (
            self.visible
            and self.status == OpportunityStatus.APPROVED
            and self.opening_date <= today <= self.closing_date
        )

    def snapshot(self) -> "Opportunity":
        return replace(self, applicant_ids=list(self.applicant_ids))


@dataclass
class Application:
    student_id: str
    opportunity_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    withdrawal_requested: bool = False
    sequence: int = 0
    submitted_at: datetime = field(default_factory=datetime.utcnow)

    @property
    def key(self) -> ApplicationKey:
        return (self.student_id, self.opportunity_id)

    @property
    def is_active(self) -> bool:
        """Pending or Successful: still counts against the student's quota."""
        return self.status in ACTIVE_APPLICATION_STATUSES

    def snapshot(self) -> "Application":
        return replace(self)
