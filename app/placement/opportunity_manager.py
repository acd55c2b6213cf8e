"""
Opportunity lifecycle: sponsor creation (quota-gated), staff approve/reject,
sponsor visibility toggling, and capacity-driven Filled status.
"""

import itertools
import re
import threading
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from app.core.enums import OpportunityLevel, OpportunityStatus, UserRole
from app.core.exceptions import (
    InvalidOpportunity,
    InvalidTransition,
    NotFound,
    PermissionDenied,
    QuotaExceeded,
)
from app.core.logging import get_logger
from app.placement.changes import ENTITY_OPPORTUNITY, Change, ChangeLog
from app.placement.criteria import FilterCriteria
from app.placement.directory import UserDirectory, require_role
from app.placement.eligibility import apply_filter, sort_canonical
from app.placement.entities import Actor, Opportunity
from app.placement.policy import PlacementPolicy

logger = get_logger(__name__)

OPPORTUNITY_ID_PREFIX = "OPP"
_ID_PATTERN = re.compile(rf"^{OPPORTUNITY_ID_PREFIX}(\d+)$")

# Fields a sponsor may change while the posting is still Pending
EDITABLE_FIELDS = (
    "title",
    "description",
    "level",
    "target_subject",
    "opening_date",
    "closing_date",
    "slots",
)


class OpportunityManager:
    def __init__(
        self,
        directory: UserDirectory,
        changes: ChangeLog,
        policy: Optional[PlacementPolicy] = None,
        lock: Optional[threading.RLock] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._opportunities: Dict[str, Opportunity] = {}
        self._next_number = 1
        self._directory = directory
        self._changes = changes
        self.policy = policy or PlacementPolicy()
        self._lock = lock or threading.RLock()
        self._today = today

    # ----- Loading (persistence collaborator) -----

    def load(self, opportunities: List[Opportunity], issued_ids: Iterable[str] = ()) -> None:
        """
        Replace the arena with persisted postings. `issued_ids` are ids handed out
        before, including deleted postings; numbering continues after the highest
        id in either set so an id is never issued twice.
        """
        with self._lock:
            self._opportunities = {o.id: o for o in opportunities}
            highest = 0
            for opp_id in itertools.chain(self._opportunities, issued_ids):
                match = _ID_PATTERN.match(opp_id)
                if match:
                    highest = max(highest, int(match.group(1)))
            self._next_number = highest + 1

    def _allocate_id(self) -> str:
        opp_id = f"{OPPORTUNITY_ID_PREFIX}{self._next_number:04d}"
        self._next_number += 1
        return opp_id

    # ----- Internal access for the application manager -----

    def _get(self, opportunity_id: str) -> Opportunity:
        opp = self._opportunities.get(opportunity_id)
        if opp is None:
            raise NotFound(f"Opportunity {opportunity_id} not found")
        return opp

    def _owned(self, actor: Actor, opportunity_id: str) -> Opportunity:
        require_role(actor, UserRole.SPONSOR)
        opp = self._get(opportunity_id)
        if opp.sponsor_id != actor.user_id:
            raise PermissionDenied("Only the sponsor who posted this opportunity can do that")
        return opp

    def _record(self, opp: Opportunity, action: str, actor: Optional[Actor], from_status=None, removed=False) -> None:
        self._changes.record(
            Change(
                ENTITY_OPPORTUNITY,
                opp.id,
                action,
                from_status=from_status.value if from_status else None,
                to_status=None if removed else opp.status.value,
                actor=actor,
                removed=removed,
            )
        )

    def _validate_fields(self, title: str, opening_date: date, closing_date: date, slots: int) -> None:
        if not title or not title.strip():
            raise InvalidOpportunity("Title cannot be empty")
        if not (self.policy.min_slots <= slots <= self.policy.max_slots):
            raise InvalidOpportunity(
                f"Number of slots must be between {self.policy.min_slots} and {self.policy.max_slots}"
            )
        if opening_date > closing_date:
            raise InvalidOpportunity("Opening date must be on or before closing date")

    def _parse_level(self, level) -> OpportunityLevel:
        try:
            return OpportunityLevel(level)
        except ValueError:
            raise InvalidOpportunity(f"Unknown level: {level}")

    # ----- Quota -----

    def active_posting_count(self, sponsor_id: str) -> int:
        return sum(
            1
            for o in self._opportunities.values()
            if o.sponsor_id == sponsor_id and o.status != OpportunityStatus.REJECTED
        )

    def quota_check(self, sponsor_id: str) -> bool:
        """True when the sponsor may create one more posting."""
        return self.active_posting_count(sponsor_id) < self.policy.max_active_postings

    # ----- Sponsor operations -----

    def create(
        self,
        actor: Actor,
        *,
        title: str,
        description: str,
        level: OpportunityLevel,
        target_subject: str,
        opening_date: date,
        closing_date: date,
        slots: int,
    ) -> Opportunity:
        require_role(actor, UserRole.SPONSOR)
        with self._lock:
            sponsor = self._directory.find_sponsor(actor.user_id)
            if sponsor is None or not sponsor.is_approved:
                raise PermissionDenied("Sponsor account must be approved by staff before posting")
            if not self.quota_check(actor.user_id):
                logger.info("opportunity_quota_exceeded", sponsor_id=actor.user_id)
                raise QuotaExceeded(
                    f"You have reached the maximum of {self.policy.max_active_postings} internship opportunities"
                )
            level = self._parse_level(level)
            self._validate_fields(title, opening_date, closing_date, slots)
            opp = Opportunity(
                id=self._allocate_id(),
                title=title.strip(),
                description=description,
                level=level,
                target_subject=target_subject.strip(),
                opening_date=opening_date,
                closing_date=closing_date,
                sponsor_id=sponsor.id,
                sponsor_name=sponsor.company_name,
                slots=slots,
            )
            self._opportunities[opp.id] = opp
            self._record(opp, "CREATED", actor)
        logger.info("opportunity_created", opportunity_id=opp.id, sponsor_id=opp.sponsor_id, slots=slots)
        return opp.snapshot()

    def update(self, actor: Actor, opportunity_id: str, changes: Dict[str, object]) -> Opportunity:
        """Edit a posting that staff have not decided on yet."""
        with self._lock:
            opp = self._owned(actor, opportunity_id)
            if opp.status != OpportunityStatus.PENDING:
                raise InvalidTransition("Only Pending opportunities can be edited")
            unknown = set(changes) - set(EDITABLE_FIELDS)
            if unknown:
                raise InvalidOpportunity(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
            merged = {name: getattr(opp, name) for name in EDITABLE_FIELDS}
            merged.update({k: v for k, v in changes.items() if v is not None})
            merged["level"] = self._parse_level(merged["level"])
            self._validate_fields(merged["title"], merged["opening_date"], merged["closing_date"], merged["slots"])
            for name, value in merged.items():
                setattr(opp, name, value.strip() if isinstance(value, str) and name != "description" else value)
            self._record(opp, "UPDATED", actor)
        logger.info("opportunity_updated", opportunity_id=opportunity_id, fields=sorted(changes))
        return opp.snapshot()

    def delete(self, actor: Actor, opportunity_id: str) -> None:
        with self._lock:
            opp = self._owned(actor, opportunity_id)
            if opp.status != OpportunityStatus.PENDING:
                raise InvalidTransition("Only Pending opportunities can be deleted")
            if opp.applicant_ids:
                raise InvalidTransition("Opportunity has applications and cannot be deleted")
            del self._opportunities[opportunity_id]
            self._record(opp, "DELETED", actor, from_status=opp.status, removed=True)
        logger.info("opportunity_deleted", opportunity_id=opportunity_id)

    def toggle_visibility(self, actor: Actor, opportunity_id: str) -> Opportunity:
        with self._lock:
            opp = self._owned(actor, opportunity_id)
            if opp.status != OpportunityStatus.APPROVED:
                raise InvalidTransition(f"Visibility can only be changed while Approved (is {opp.status.value})")
            opp.visible = not opp.visible
            self._record(opp, "VISIBILITY_ON" if opp.visible else "VISIBILITY_OFF", actor)
        logger.info("opportunity_visibility_toggled", opportunity_id=opportunity_id, visible=opp.visible)
        return opp.snapshot()

    # ----- Staff operations -----

    def approve(self, actor: Actor, opportunity_id: str) -> Opportunity:
        return self._decide(actor, opportunity_id, OpportunityStatus.APPROVED)

    def reject(self, actor: Actor, opportunity_id: str) -> Opportunity:
        return self._decide(actor, opportunity_id, OpportunityStatus.REJECTED)

    def _decide(self, actor: Actor, opportunity_id: str, outcome: OpportunityStatus) -> Opportunity:
        require_role(actor, UserRole.STAFF)
        with self._lock:
            opp = self._get(opportunity_id)
            if opp.status != OpportunityStatus.PENDING:
                raise InvalidTransition(f"Only Pending opportunities can be decided (is {opp.status.value})")
            opp.status = outcome
            if outcome == OpportunityStatus.APPROVED:
                opp.visible = True
            self._record(opp, outcome.value.upper(), actor, from_status=OpportunityStatus.PENDING)
        logger.info("opportunity_decided", opportunity_id=opportunity_id, status=outcome.value, staff_id=actor.user_id)
        return opp.snapshot()

    # ----- Capacity -----

    def update_filled_status(self, opportunity_id: str, accepted_count: int, actor: Optional[Actor] = None) -> Opportunity:
        """Mark Filled once accepted_count reaches the slot count. Idempotent; never reverses Filled."""
        with self._lock:
            opp = self._get(opportunity_id)
            if opp.status == OpportunityStatus.APPROVED and accepted_count >= opp.slots:
                opp.status = OpportunityStatus.FILLED
                self._record(opp, "FILLED", actor, from_status=OpportunityStatus.APPROVED)
                logger.info("opportunity_filled", opportunity_id=opportunity_id, accepted=accepted_count)
            return opp.snapshot()

    def refresh_capacity(self, opportunity_id: str, accepted_count: int, actor: Optional[Actor] = None) -> Opportunity:
        """Re-derive Filled from the accepted count after an application was removed."""
        with self._lock:
            opp = self._get(opportunity_id)
            if opp.status == OpportunityStatus.FILLED and accepted_count < opp.slots:
                opp.status = OpportunityStatus.APPROVED
                self._record(opp, "REOPENED", actor, from_status=OpportunityStatus.FILLED)
                logger.info("opportunity_reopened", opportunity_id=opportunity_id, accepted=accepted_count)
                return opp.snapshot()
        return self.update_filled_status(opportunity_id, accepted_count, actor)

    # ----- Back-references (application manager only) -----

    def _attach_applicant(self, opportunity_id: str, student_id: str) -> None:
        opp = self._get(opportunity_id)
        if student_id not in opp.applicant_ids:
            opp.applicant_ids.append(student_id)

    def _detach_applicant(self, opportunity_id: str, student_id: str) -> None:
        opp = self._opportunities.get(opportunity_id)
        if opp is not None and student_id in opp.applicant_ids:
            opp.applicant_ids.remove(student_id)

    # ----- Queries -----

    def get(self, opportunity_id: str) -> Opportunity:
        return self._get(opportunity_id).snapshot()

    def find(self, opportunity_id: str) -> Optional[Opportunity]:
        opp = self._opportunities.get(opportunity_id)
        return opp.snapshot() if opp else None

    def all(self) -> List[Opportunity]:
        return [o.snapshot() for o in self._opportunities.values()]

    def by_sponsor(self, sponsor_id: str) -> List[Opportunity]:
        return [o.snapshot() for o in self._opportunities.values() if o.sponsor_id == sponsor_id]

    def pending(self) -> List[Opportunity]:
        return [o.snapshot() for o in self._opportunities.values() if o.status == OpportunityStatus.PENDING]

    def filter(self, criteria: Optional[FilterCriteria] = None, sponsor_id: Optional[str] = None) -> List[Opportunity]:
        """Criteria filter plus canonical sort over all postings, or one sponsor's."""
        pool = self.by_sponsor(sponsor_id) if sponsor_id else self.all()
        return sort_canonical(apply_filter(pool, criteria))

    def today(self) -> date:
        return self._today()
