"""
Pure read-path functions over opportunities.

Two independent narrowing steps:
  * criteria filtering: user-chosen predicates (level, subject, status, closing date);
  * eligibility filtering: what a given student may see at all (open, subject, level).
A student-facing view composes eligibility -> criteria -> canonical sort.
"""

from datetime import date
from typing import Iterable, List, Optional

from app.core.enums import OpportunityLevel
from app.placement.criteria import FilterCriteria
from app.placement.entities import Opportunity, Student
from app.placement.policy import PlacementPolicy

DEFAULT_POLICY = PlacementPolicy()


def _matches(opp: Opportunity, criteria: FilterCriteria) -> bool:
    if criteria.level is not None and opp.level != criteria.level:
        return False
    if criteria.status is not None and opp.status != criteria.status:
        return False
    if criteria.subject is not None and opp.target_subject.casefold() != criteria.subject.casefold():
        return False
    if criteria.closing_by is not None and opp.closing_date > criteria.closing_by:
        return False
    return True


def apply_filter(opportunities: Iterable[Opportunity], criteria: Optional[FilterCriteria]) -> List[Opportunity]:
    """Keep opportunities matching every set predicate. No predicates set keeps everything, in order."""
    if criteria is None or not criteria.has_filters():
        return list(opportunities)
    return [opp for opp in opportunities if _matches(opp, criteria)]


def is_open(opp: Opportunity, today: Optional[date] = None) -> bool:
    """Approved, visible and today within [opening, closing]."""
    return opp.is_open_on(today or date.today())


def subject_matches(opp: Opportunity, student: Student, policy: PlacementPolicy = DEFAULT_POLICY) -> bool:
    target = opp.target_subject.strip().casefold()
    if target == policy.subject_wildcard.casefold():
        return True
    return target == student.subject.strip().casefold()


def level_allowed(level: OpportunityLevel, student: Student, policy: PlacementPolicy = DEFAULT_POLICY) -> bool:
    """Juniors (below the seniority threshold) are limited to Basic postings."""
    if student.year_of_study >= policy.senior_year_threshold:
        return True
    return level == OpportunityLevel.BASIC


def is_eligible(
    opp: Opportunity,
    student: Student,
    today: Optional[date] = None,
    policy: PlacementPolicy = DEFAULT_POLICY,
) -> bool:
    return (
        is_open(opp, today)
        and subject_matches(opp, student, policy)
        and level_allowed(opp.level, student, policy)
    )


def filter_for_student(
    opportunities: Iterable[Opportunity],
    student: Student,
    today: Optional[date] = None,
    policy: PlacementPolicy = DEFAULT_POLICY,
) -> List[Opportunity]:
    today = today or date.today()
    return [opp for opp in opportunities if is_eligible(opp, student, today, policy)]


def sort_canonical(opportunities: Iterable[Opportunity]) -> List[Opportunity]:
    """Stable sort by title, case-insensitive ascending."""
    return sorted(opportunities, key=lambda opp: opp.title.casefold())


def student_view(
    opportunities: Iterable[Opportunity],
    student: Student,
    criteria: Optional[FilterCriteria] = None,
    today: Optional[date] = None,
    policy: PlacementPolicy = DEFAULT_POLICY,
) -> List[Opportunity]:
    eligible = filter_for_student(opportunities, student, today, policy)
    return sort_canonical(apply_filter(eligible, criteria))
