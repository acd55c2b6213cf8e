from dataclasses import dataclass


@dataclass(frozen=True)
class PlacementPolicy:
    """Numeric rules the managers enforce. Built from settings at start-up."""

    max_active_applications: int = 3
    max_active_postings: int = 5
    min_slots: int = 1
    max_slots: int = 10
    senior_year_threshold: int = 3
    subject_wildcard: str = "All"

    @classmethod
    def from_settings(cls, settings) -> "PlacementPolicy":
        return cls(
            max_active_applications=settings.max_active_applications,
            max_active_postings=settings.max_active_postings,
            min_slots=settings.min_slots,
            max_slots=settings.max_slots,
            senior_year_threshold=settings.senior_year_threshold,
            subject_wildcard=settings.subject_wildcard,
        )
