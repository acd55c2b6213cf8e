from enum import Enum


class CaseInsensitiveEnum(str, Enum):
    """String enum whose lookup ignores case and surrounding whitespace."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            wanted = value.strip().lower()
            for member in cls:
                if member.value.lower() == wanted:
                    return member
        return None


class OpportunityLevel(CaseInsensitiveEnum):
    BASIC = "Basic"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


class OpportunityStatus(CaseInsensitiveEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    FILLED = "Filled"


class ApplicationStatus(CaseInsensitiveEnum):
    PENDING = "Pending"
    SUCCESSFUL = "Successful"
    UNSUCCESSFUL = "Unsuccessful"
    ACCEPTED = "Accepted"


class SponsorStatus(CaseInsensitiveEnum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class UserRole(CaseInsensitiveEnum):
    STUDENT = "STUDENT"
    SPONSOR = "SPONSOR"
    STAFF = "STAFF"


# Application statuses that still count against the per-student quota
ACTIVE_APPLICATION_STATUSES = frozenset({ApplicationStatus.PENDING, ApplicationStatus.SUCCESSFUL})
