"""Students and sponsor accounts known to the engine, with the staff approval gate on sponsors."""

import threading
from typing import Dict, List, Optional

from app.core.enums import SponsorStatus, UserRole
from app.core.exceptions import InvalidTransition, NotFound, PermissionDenied, PlacementError
from app.core.logging import get_logger
from app.placement.changes import ENTITY_SPONSOR, ENTITY_STUDENT, Change, ChangeLog
from app.placement.entities import Actor, Sponsor, Student

logger = get_logger(__name__)


def require_role(actor: Actor, *roles: UserRole) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise PermissionDenied(f"This action requires role {allowed}")


class UserDirectory:
    def __init__(self, changes: ChangeLog, lock: Optional[threading.RLock] = None) -> None:
        self._students: Dict[str, Student] = {}
        self._sponsors: Dict[str, Sponsor] = {}
        self._changes = changes
        self._lock = lock or threading.RLock()

    # ----- Loading (persistence collaborator) -----

    def load(self, students: List[Student], sponsors: List[Sponsor]) -> None:
        with self._lock:
            self._students = {s.id: s for s in students}
            self._sponsors = {s.id: s for s in sponsors}

    # ----- Students -----

    def register_student(self, actor: Actor, student: Student) -> Student:
        """Add or replace a student profile. Staff only."""
        require_role(actor, UserRole.STAFF)
        if student.year_of_study < 1:
            raise PlacementError("year_of_study must be at least 1")
        with self._lock:
            action = "UPDATED" if student.id in self._students else "REGISTERED"
            self._students[student.id] = student.snapshot()
            self._changes.record(Change(ENTITY_STUDENT, student.id, action, actor=actor))
        logger.info("student_registered", student_id=student.id, year=student.year_of_study)
        return student.snapshot()

    def get_student(self, student_id: str) -> Student:
        student = self._students.get(student_id)
        if student is None:
            raise NotFound(f"Student {student_id} not found")
        return student.snapshot()

    def students(self) -> List[Student]:
        return [s.snapshot() for s in self._students.values()]

    # ----- Sponsors -----

    def register_sponsor(self, actor: Actor, sponsor: Sponsor) -> Sponsor:
        """A sponsor files their own account; it starts Pending until staff decide."""
        require_role(actor, UserRole.SPONSOR)
        if actor.user_id != sponsor.id:
            raise PermissionDenied("Sponsors can only register their own account")
        with self._lock:
            if sponsor.id in self._sponsors:
                raise InvalidTransition(f"Sponsor {sponsor.id} is already registered")
            stored = Sponsor(
                id=sponsor.id,
                name=sponsor.name,
                company_name=sponsor.company_name,
                department=sponsor.department,
                position=sponsor.position,
                status=SponsorStatus.PENDING,
            )
            self._sponsors[stored.id] = stored
            self._changes.record(
                Change(ENTITY_SPONSOR, stored.id, "REGISTERED", to_status=stored.status.value, actor=actor)
            )
        logger.info("sponsor_registered", sponsor_id=stored.id, company=stored.company_name)
        return stored.snapshot()

    def approve_sponsor(self, actor: Actor, sponsor_id: str) -> Sponsor:
        return self._decide_sponsor(actor, sponsor_id, SponsorStatus.APPROVED)

    def reject_sponsor(self, actor: Actor, sponsor_id: str) -> Sponsor:
        return self._decide_sponsor(actor, sponsor_id, SponsorStatus.REJECTED)

    def _decide_sponsor(self, actor: Actor, sponsor_id: str, outcome: SponsorStatus) -> Sponsor:
        require_role(actor, UserRole.STAFF)
        with self._lock:
            sponsor = self._sponsor(sponsor_id)
            if sponsor.status != SponsorStatus.PENDING:
                raise InvalidTransition(f"Only Pending sponsor accounts can be decided (is {sponsor.status.value})")
            sponsor.status = outcome
            self._changes.record(
                Change(
                    ENTITY_SPONSOR,
                    sponsor.id,
                    outcome.value.upper(),
                    from_status=SponsorStatus.PENDING.value,
                    to_status=outcome.value,
                    actor=actor,
                )
            )
        logger.info("sponsor_decided", sponsor_id=sponsor_id, status=outcome.value, staff_id=actor.user_id)
        return sponsor.snapshot()

    def _sponsor(self, sponsor_id: str) -> Sponsor:
        sponsor = self._sponsors.get(sponsor_id)
        if sponsor is None:
            raise NotFound(f"Sponsor {sponsor_id} not found")
        return sponsor

    def get_sponsor(self, sponsor_id: str) -> Sponsor:
        return self._sponsor(sponsor_id).snapshot()

    def find_sponsor(self, sponsor_id: str) -> Optional[Sponsor]:
        sponsor = self._sponsors.get(sponsor_id)
        return sponsor.snapshot() if sponsor else None

    def sponsors(self) -> List[Sponsor]:
        return [s.snapshot() for s in self._sponsors.values()]

    def pending_sponsors(self) -> List[Sponsor]:
        return [s.snapshot() for s in self._sponsors.values() if s.status == SponsorStatus.PENDING]
