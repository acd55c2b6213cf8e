"""
Application lifecycle.

    Pending --decide(Successful)--> Successful --accept--> Accepted
    Pending --decide(Unsuccessful)--> Unsuccessful

The withdrawal flag is orthogonal to status: a student raises it (on anything
but an Unsuccessful application), staff either clear it (reject) or delete the
application outright (approve). Nothing here ever changes status as part of
the withdrawal protocol. Removing an Accepted application frees its slot.

Accepting an offer is destructive: every other Pending/Successful application
of the same student is deleted from the system, not merely marked.
"""

import threading
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

from app.core.enums import ApplicationStatus, UserRole
from app.core.exceptions import (
    AlreadyFinalized,
    AlreadyRequested,
    DuplicateApplication,
    IneligibleLevel,
    InvalidTransition,
    NotFound,
    NotOpen,
    PermissionDenied,
    QuotaExceeded,
)
from app.core.logging import get_logger
from app.placement.changes import ENTITY_APPLICATION, Change, ChangeLog, application_entity_id
from app.placement.directory import UserDirectory, require_role
from app.placement.eligibility import level_allowed
from app.placement.entities import Actor, Application, ApplicationKey
from app.placement.opportunity_manager import OpportunityManager
from app.placement.policy import PlacementPolicy

logger = get_logger(__name__)

DECISION_OUTCOMES = (ApplicationStatus.SUCCESSFUL, ApplicationStatus.UNSUCCESSFUL)


class ApplicationManager:
    def __init__(
        self,
        opportunities: OpportunityManager,
        directory: UserDirectory,
        changes: ChangeLog,
        policy: Optional[PlacementPolicy] = None,
        lock: Optional[threading.RLock] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._applications: Dict[ApplicationKey, Application] = {}
        self._next_sequence = 1
        self._opportunities = opportunities
        self._directory = directory
        self._changes = changes
        self.policy = policy or opportunities.policy
        self._lock = lock or threading.RLock()
        self._today = today or opportunities.today

    # ----- Loading (persistence collaborator) -----

    def load(self, applications: List[Application]) -> None:
        """Replace the arena and rebuild opportunity back-references in submission order."""
        with self._lock:
            ordered = sorted(applications, key=lambda a: a.sequence)
            self._applications = {}
            for app in ordered:
                self._applications[app.key] = app
                self._opportunities._attach_applicant(app.opportunity_id, app.student_id)
            self._next_sequence = max((a.sequence for a in ordered), default=0) + 1

    # ----- Internals -----

    def _get(self, key: ApplicationKey) -> Application:
        app = self._applications.get(tuple(key))
        if app is None:
            student_id, opportunity_id = key
            raise NotFound(f"No application by {student_id} for {opportunity_id}")
        return app

    def _owned_by_student(self, actor: Actor, key: ApplicationKey) -> Application:
        require_role(actor, UserRole.STUDENT)
        app = self._get(key)
        if app.student_id != actor.user_id:
            raise PermissionDenied("Students can only act on their own applications")
        return app

    def _record(self, app: Application, action: str, actor: Optional[Actor], from_status=None, removed=False) -> None:
        self._changes.record(
            Change(
                ENTITY_APPLICATION,
                application_entity_id(app.student_id, app.opportunity_id),
                action,
                from_status=from_status.value if from_status else None,
                to_status=None if removed else app.status.value,
                actor=actor,
                removed=removed,
            )
        )

    def _remove(self, app: Application, actor: Optional[Actor], action: str) -> None:
        del self._applications[app.key]
        self._opportunities._detach_applicant(app.opportunity_id, app.student_id)
        self._record(app, action, actor, from_status=app.status, removed=True)

    # ----- Student operations -----

    def submit(self, actor: Actor, opportunity_id: str) -> Application:
        """
        Validate in order: duplicate, student quota, level gating, open window.
        On success the application is Pending and listed on the opportunity.
        """
        require_role(actor, UserRole.STUDENT)
        with self._lock:
            student = self._directory.get_student(actor.user_id)
            opp = self._opportunities._get(opportunity_id)
            key = (student.id, opp.id)
            if key in self._applications:
                raise DuplicateApplication("You have already applied for this internship")
            if self.active_count_for(student.id) >= self.policy.max_active_applications:
                logger.info("application_quota_exceeded", student_id=student.id, opportunity_id=opp.id)
                raise QuotaExceeded(
                    f"You have reached the maximum number of applications ({self.policy.max_active_applications})"
                )
            if not level_allowed(opp.level, student, self.policy):
                raise IneligibleLevel(
                    f"Year {student.year_of_study} students can only apply for Basic-level internships"
                )
            if not opp.is_open_on(self._today()):
                raise NotOpen("This internship is not currently open for applications")

            app = Application(
                student_id=student.id,
                opportunity_id=opp.id,
                sequence=self._next_sequence,
                submitted_at=datetime.utcnow(),
            )
            self._next_sequence += 1
            self._applications[key] = app
            self._opportunities._attach_applicant(opp.id, student.id)
            self._record(app, "SUBMITTED", actor)
        logger.info("application_submitted", student_id=student.id, opportunity_id=opp.id)
        return app.snapshot()

    def accept(self, actor: Actor, key: ApplicationKey) -> bool:
        """
        Accept a Successful offer. Returns False, touching nothing, when the
        application is not Successful, has a withdrawal pending, or the student
        already holds an Accepted placement.

        Side effect: all the student's other Pending/Successful applications
        are deleted. The victim set is computed before the first write.
        """
        with self._lock:
            app = self._owned_by_student(actor, key)
            if app.status != ApplicationStatus.SUCCESSFUL:
                logger.info("accept_refused", student_id=app.student_id, status=app.status.value)
                return False
            if app.withdrawal_requested:
                logger.info("accept_refused", student_id=app.student_id, reason="withdrawal_pending")
                return False
            if any(
                a.status == ApplicationStatus.ACCEPTED
                for a in self._applications.values()
                if a.student_id == app.student_id
            ):
                logger.info("accept_refused", student_id=app.student_id, reason="already_placed")
                return False

            victims = [
                a
                for a in self._applications.values()
                if a.student_id == app.student_id and a.key != app.key and a.is_active
            ]

            app.status = ApplicationStatus.ACCEPTED
            self._record(app, "ACCEPTED", actor, from_status=ApplicationStatus.SUCCESSFUL)
            for other in victims:
                self._remove(other, actor, "WITHDRAWN_ON_ACCEPT")
            self._opportunities.update_filled_status(
                app.opportunity_id, self.accepted_count_for(app.opportunity_id), actor
            )
        logger.info(
            "application_accepted",
            student_id=app.student_id,
            opportunity_id=app.opportunity_id,
            withdrawn=len(victims),
        )
        return True

    def request_withdrawal(self, actor: Actor, key: ApplicationKey) -> Application:
        """Raise the withdrawal flag. Status is left exactly as it is."""
        with self._lock:
            app = self._owned_by_student(actor, key)
            if app.withdrawal_requested:
                raise AlreadyRequested("Withdrawal has already been requested for this application")
            if app.status == ApplicationStatus.UNSUCCESSFUL:
                raise InvalidTransition("Cannot request withdrawal of an Unsuccessful application")
            app.withdrawal_requested = True
            self._record(app, "WITHDRAWAL_REQUESTED", actor)
        logger.info("withdrawal_requested", student_id=app.student_id, opportunity_id=app.opportunity_id)
        return app.snapshot()

    # ----- Sponsor operations -----

    def decide(self, actor: Actor, key: ApplicationKey, outcome: ApplicationStatus) -> Application:
        require_role(actor, UserRole.SPONSOR)
        with self._lock:
            app = self._get(key)
            opp = self._opportunities._get(app.opportunity_id)
            if opp.sponsor_id != actor.user_id:
                raise PermissionDenied("Only the sponsor who posted this opportunity can decide its applications")
            try:
                outcome = ApplicationStatus(outcome)
            except ValueError:
                raise InvalidTransition(f"Unknown outcome: {outcome}")
            if outcome not in DECISION_OUTCOMES:
                raise InvalidTransition("Outcome must be Successful or Unsuccessful")
            if app.status != ApplicationStatus.PENDING:
                raise AlreadyFinalized(f"Cannot change status of a finalized application ({app.status.value})")
            app.status = outcome
            self._record(app, outcome.value.upper(), actor, from_status=ApplicationStatus.PENDING)
        logger.info(
            "application_decided",
            student_id=app.student_id,
            opportunity_id=app.opportunity_id,
            status=outcome.value,
        )
        return app.snapshot()

    # ----- Staff operations -----

    def approve_withdrawal(self, actor: Actor, key: ApplicationKey) -> None:
        """Delete the application everywhere, then re-derive the opportunity's Filled status."""
        require_role(actor, UserRole.STAFF)
        with self._lock:
            app = self._get(key)
            if not app.withdrawal_requested:
                raise InvalidTransition("No withdrawal request is pending for this application")
            self._remove(app, actor, "WITHDRAWAL_APPROVED")
            self._opportunities.refresh_capacity(
                app.opportunity_id, self.accepted_count_for(app.opportunity_id), actor
            )
        logger.info("withdrawal_approved", student_id=app.student_id, opportunity_id=app.opportunity_id)

    def reject_withdrawal(self, actor: Actor, key: ApplicationKey) -> Application:
        """Clear the withdrawal flag. Idempotent; status is not touched."""
        require_role(actor, UserRole.STAFF)
        with self._lock:
            app = self._get(key)
            if app.withdrawal_requested:
                app.withdrawal_requested = False
                self._record(app, "WITHDRAWAL_REJECTED", actor)
                logger.info("withdrawal_rejected", student_id=app.student_id, opportunity_id=app.opportunity_id)
        return app.snapshot()

    # ----- Queries -----

    def get(self, key: ApplicationKey) -> Application:
        return self._get(key).snapshot()

    def all(self) -> List[Application]:
        return [a.snapshot() for a in self._applications.values()]

    def by_student(self, student_id: str) -> List[Application]:
        return [a.snapshot() for a in self._applications.values() if a.student_id == student_id]

    def by_opportunity(self, opportunity_id: str) -> List[Application]:
        opp = self._opportunities._get(opportunity_id)
        return [self._applications[(sid, opportunity_id)].snapshot() for sid in opp.applicant_ids]

    def all_withdrawal_requests(self) -> List[Application]:
        return [a.snapshot() for a in self._applications.values() if a.withdrawal_requested]

    def accepted_count_for(self, opportunity_id: str) -> int:
        return sum(
            1
            for a in self._applications.values()
            if a.opportunity_id == opportunity_id and a.status == ApplicationStatus.ACCEPTED
        )

    def active_count_for(self, student_id: str) -> int:
        return sum(1 for a in self._applications.values() if a.student_id == student_id and a.is_active)
