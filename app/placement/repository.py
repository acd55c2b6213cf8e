"""
Persistence collaborator for the placement engine.

load_engine() builds an engine from the database; persist_changes() is called
after each mutating manager call with the drained change log and writes the
touched rows (upsert or delete) plus one audit entry per change.
"""

from datetime import date
from typing import Callable, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ApplicationStatus, OpportunityLevel, OpportunityStatus, SponsorStatus
from app.core.exceptions import NotFound
from app.core.models import ApplicationRecord, OpportunityRecord, PlacementAuditLog, SponsorRecord, StudentRecord
from app.core.logging import get_logger
from app.placement import audit_service
from app.placement.changes import (
    ENTITY_APPLICATION,
    ENTITY_OPPORTUNITY,
    ENTITY_SPONSOR,
    ENTITY_STUDENT,
    Change,
    split_application_entity_id,
)
from app.placement.engine import PlacementEngine
from app.placement.entities import Application, Opportunity, Sponsor, Student
from app.placement.policy import PlacementPolicy

logger = get_logger(__name__)


# ----- Row <-> entity mapping -----

def student_from_record(r: StudentRecord) -> Student:
    return Student(id=r.id, name=r.name, year_of_study=r.year_of_study, subject=r.subject)


def sponsor_from_record(r: SponsorRecord) -> Sponsor:
    return Sponsor(
        id=r.id,
        name=r.name,
        company_name=r.company_name,
        department=r.department,
        position=r.position,
        status=SponsorStatus(r.status),
    )


def opportunity_from_record(r: OpportunityRecord) -> Opportunity:
    return Opportunity(
        id=r.id,
        title=r.title,
        description=r.description,
        level=OpportunityLevel(r.level),
        target_subject=r.target_subject,
        opening_date=r.opening_date,
        closing_date=r.closing_date,
        sponsor_id=r.sponsor_id,
        sponsor_name=r.sponsor_name,
        slots=r.slots,
        status=OpportunityStatus(r.status),
        visible=r.visible,
    )


def application_from_record(r: ApplicationRecord) -> Application:
    return Application(
        student_id=r.student_id,
        opportunity_id=r.opportunity_id,
        status=ApplicationStatus(r.status),
        withdrawal_requested=r.withdrawal_requested,
        sequence=r.sequence,
        submitted_at=r.submitted_at,
    )


def _fill_student(row: StudentRecord, s: Student) -> None:
    row.name = s.name
    row.year_of_study = s.year_of_study
    row.subject = s.subject


def _fill_sponsor(row: SponsorRecord, s: Sponsor) -> None:
    row.name = s.name
    row.company_name = s.company_name
    row.department = s.department
    row.position = s.position
    row.status = s.status.value


def _fill_opportunity(row: OpportunityRecord, o: Opportunity) -> None:
    row.title = o.title
    row.description = o.description
    row.level = o.level.value
    row.target_subject = o.target_subject
    row.opening_date = o.opening_date
    row.closing_date = o.closing_date
    row.sponsor_id = o.sponsor_id
    row.sponsor_name = o.sponsor_name
    row.slots = o.slots
    row.status = o.status.value
    row.visible = o.visible


def _fill_application(row: ApplicationRecord, a: Application) -> None:
    row.status = a.status.value
    row.withdrawal_requested = a.withdrawal_requested
    row.sequence = a.sequence
    row.submitted_at = a.submitted_at


# ----- Loading -----

async def _issued_opportunity_ids(db: AsyncSession) -> List[str]:
    """Every opportunity id the audit trail has seen, deleted postings included."""
    result = await db.execute(
        select(PlacementAuditLog.entity_id)
        .where(PlacementAuditLog.entity_type == ENTITY_OPPORTUNITY)
        .distinct()
    )
    return list(result.scalars().all())


async def reload_engine(db: AsyncSession, engine: PlacementEngine) -> PlacementEngine:
    """Replace the engine's arenas with what the database holds now."""
    students = (await db.execute(select(StudentRecord))).scalars().all()
    sponsors = (await db.execute(select(SponsorRecord))).scalars().all()
    opportunities = (await db.execute(select(OpportunityRecord).order_by(OpportunityRecord.id))).scalars().all()
    applications = (
        await db.execute(select(ApplicationRecord).order_by(ApplicationRecord.sequence))
    ).scalars().all()
    issued_ids = await _issued_opportunity_ids(db)

    engine.load(
        [student_from_record(r) for r in students],
        [sponsor_from_record(r) for r in sponsors],
        [opportunity_from_record(r) for r in opportunities],
        [application_from_record(r) for r in applications],
        issued_ids,
    )
    logger.info(
        "placement_engine_loaded",
        students=len(students),
        sponsors=len(sponsors),
        opportunities=len(opportunities),
        applications=len(applications),
        issued_opportunity_ids=len(issued_ids),
    )
    return engine


async def load_engine(
    db: AsyncSession,
    policy: Optional[PlacementPolicy] = None,
    today: Callable[[], date] = date.today,
) -> PlacementEngine:
    """Build an engine holding every persisted student, sponsor, opportunity and application."""
    return await reload_engine(db, PlacementEngine(policy, today))


# ----- Saving -----

def _current(lookup, *args):
    """Entity as the engine holds it now, or None if a later change in the batch removed it."""
    try:
        return lookup(*args)
    except NotFound:
        return None


async def _upsert(db: AsyncSession, model, pk, fill, entity, **identity) -> None:
    row = await db.get(model, pk)
    if row is None:
        row = model(**identity)
        db.add(row)
    fill(row, entity)


async def _delete(db: AsyncSession, model, pk) -> None:
    row = await db.get(model, pk)
    if row is not None:
        await db.delete(row)


async def _apply(db: AsyncSession, engine: PlacementEngine, change: Change) -> None:
    if change.entity_type == ENTITY_STUDENT:
        student = _current(engine.directory.get_student, change.entity_id)
        if student is not None:
            await _upsert(db, StudentRecord, student.id, _fill_student, student, id=student.id)
    elif change.entity_type == ENTITY_SPONSOR:
        sponsor = _current(engine.directory.get_sponsor, change.entity_id)
        if sponsor is not None:
            await _upsert(db, SponsorRecord, sponsor.id, _fill_sponsor, sponsor, id=sponsor.id)
    elif change.entity_type == ENTITY_OPPORTUNITY:
        if change.removed:
            await _delete(db, OpportunityRecord, change.entity_id)
            return
        opp = _current(engine.opportunities.get, change.entity_id)
        if opp is not None:
            await _upsert(db, OpportunityRecord, opp.id, _fill_opportunity, opp, id=opp.id)
    elif change.entity_type == ENTITY_APPLICATION:
        student_id, opportunity_id = split_application_entity_id(change.entity_id)
        pk = (student_id, opportunity_id)
        if change.removed:
            await _delete(db, ApplicationRecord, pk)
            return
        app = _current(engine.applications.get, pk)
        if app is not None:
            await _upsert(
                db,
                ApplicationRecord,
                pk,
                _fill_application,
                app,
                student_id=student_id,
                opportunity_id=opportunity_id,
            )
    else:
        raise ValueError(f"Unknown entity type in change log: {change.entity_type}")


async def persist_changes(db: AsyncSession, engine: PlacementEngine, changes: Iterable[Change]) -> int:
    """Write the rows touched by `changes` and their audit entries in one commit. Returns the change count."""
    count = 0
    for change in changes:
        await _apply(db, engine, change)
        await audit_service.log_audit(db, change)
        count += 1
    if count:
        await db.commit()
    return count


async def mutate(db: AsyncSession, engine: PlacementEngine, operation: Callable, *args, **kwargs):
    """
    Run one manager call and persist what it changed, holding the engine's async
    lock so persisted order matches mutation order. Manager errors propagate
    before anything is written. If writing fails the session is rolled back and
    the engine is reloaded from the database before the error propagates, so
    memory never holds a change the database does not.
    """
    async with engine.lock:
        result = operation(*args, **kwargs)
        changes = engine.drain_changes()
        try:
            await persist_changes(db, engine, changes)
        except Exception:
            logger.exception("placement_persist_failed", changes=len(changes))
            await db.rollback()
            await reload_engine(db, engine)
            raise
    return result
