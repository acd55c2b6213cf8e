import asyncio
import threading
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from app.placement.application_manager import ApplicationManager
from app.placement.changes import Change, ChangeLog
from app.placement.criteria import FilterCriteria
from app.placement.directory import UserDirectory
from app.placement.eligibility import student_view
from app.placement.entities import Application, Opportunity, Sponsor, Student
from app.placement.opportunity_manager import OpportunityManager
from app.placement.policy import PlacementPolicy


class PlacementEngine:
    """
    Owns the in-memory arenas and the managers over them.

    One re-entrant lock is shared by every manager so compound operations never
    interleave. `lock` (asyncio) is for callers that must keep "mutate then
    persist" together across an await.
    """

    def __init__(self, policy: Optional[PlacementPolicy] = None, today: Callable[[], date] = date.today) -> None:
        self.policy = policy or PlacementPolicy()
        self.changes = ChangeLog()
        self._mutex = threading.RLock()
        self.lock = asyncio.Lock()
        # Last criteria each user listed with, kept between views
        self._saved_filters: Dict[str, FilterCriteria] = {}
        self.directory = UserDirectory(self.changes, self._mutex)
        self.opportunities = OpportunityManager(self.directory, self.changes, self.policy, self._mutex, today)
        self.applications = ApplicationManager(
            self.opportunities, self.directory, self.changes, self.policy, self._mutex, today
        )

    def load(
        self,
        students: List[Student],
        sponsors: List[Sponsor],
        opportunities: List[Opportunity],
        applications: List[Application],
        issued_opportunity_ids: Iterable[str] = (),
    ) -> None:
        """
        Seed every arena from persisted collections, replacing whatever was held.
        Order matters: back-references need opportunities first.
        """
        with self._mutex:
            self.directory.load(students, sponsors)
            self.opportunities.load(opportunities, issued_opportunity_ids)
            self.applications.load(applications)
            self.changes.drain()

    def visible_to_student(self, student_id: str, criteria: Optional[FilterCriteria] = None) -> List[Opportunity]:
        student = self.directory.get_student(student_id)
        return student_view(
            self.opportunities.all(),
            student,
            criteria,
            today=self.opportunities.today(),
            policy=self.policy,
        )

    def drain_changes(self) -> List[Change]:
        return self.changes.drain()

    def saved_filter(self, user_id: str) -> FilterCriteria:
        with self._mutex:
            return self._saved_filters.get(user_id, FilterCriteria.reset())

    def remember_filter(self, user_id: str, criteria: FilterCriteria) -> FilterCriteria:
        with self._mutex:
            self._saved_filters[user_id] = criteria
        return criteria

    def clear_filter(self, user_id: str) -> FilterCriteria:
        with self._mutex:
            self._saved_filters.pop(user_id, None)
        return FilterCriteria.reset()
