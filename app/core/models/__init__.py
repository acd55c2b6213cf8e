from app.core.models.student import StudentRecord
from app.core.models.sponsor import SponsorRecord
from app.core.models.opportunity import OpportunityRecord
from app.core.models.application import ApplicationRecord
from app.core.models.placement_audit_log import PlacementAuditLog

__all__ = [
    "StudentRecord",
    "SponsorRecord",
    "OpportunityRecord",
    "ApplicationRecord",
    "PlacementAuditLog",
]
