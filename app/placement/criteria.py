from dataclasses import dataclass
from datetime import date
from typing import Optional, Union

from app.core.enums import OpportunityLevel, OpportunityStatus


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class FilterCriteria:
    """Optional predicates narrowing a list of opportunities. Unset means "match anything"."""

    level: Optional[OpportunityLevel] = None
    subject: Optional[str] = None
    status: Optional[OpportunityStatus] = None
    closing_by: Optional[date] = None

    @classmethod
    def build(
        cls,
        level: Union[OpportunityLevel, str, None] = None,
        subject: Optional[str] = None,
        status: Union[OpportunityStatus, str, None] = None,
        closing_by: Optional[date] = None,
    ) -> "FilterCriteria":
        """Parse raw user input; level and status match case-insensitively. Raises ValueError on unknown values."""
        return cls(
            level=None if _blank(level) else OpportunityLevel(level),
            subject=None if _blank(subject) else subject.strip(),
            status=None if _blank(status) else OpportunityStatus(status),
            closing_by=closing_by,
        )

    def has_filters(self) -> bool:
        return any(v is not None for v in (self.level, self.subject, self.status, self.closing_by))

    @classmethod
    def reset(cls) -> "FilterCriteria":
        """The empty criteria every user starts with."""
        return cls()
