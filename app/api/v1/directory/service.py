"""Student registration and the sponsor account approval gate."""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.placement import repository
from app.placement.engine import PlacementEngine
from app.placement.entities import Sponsor, Student

from .schemas import SponsorRegister, SponsorResponse, StudentRegister, StudentResponse


def _student_to_response(s: Student) -> StudentResponse:
    return StudentResponse(id=s.id, name=s.name, year_of_study=s.year_of_study, subject=s.subject)


def _sponsor_to_response(s: Sponsor) -> SponsorResponse:
    return SponsorResponse(
        id=s.id,
        name=s.name,
        company_name=s.company_name,
        department=s.department,
        position=s.position,
        status=s.status,
    )


async def register_student(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    payload: StudentRegister,
) -> StudentResponse:
    student = Student(
        id=payload.id,
        name=payload.name.strip(),
        year_of_study=payload.year_of_study,
        subject=payload.subject.strip(),
    )
    stored = await repository.mutate(db, engine, engine.directory.register_student, current_user.as_actor(), student)
    return _student_to_response(stored)


async def register_sponsor(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    payload: SponsorRegister,
) -> SponsorResponse:
    """Register the calling sponsor's own account. It waits for staff approval."""
    sponsor = Sponsor(
        id=current_user.id,
        name=payload.name.strip(),
        company_name=payload.company_name.strip(),
        department=payload.department,
        position=payload.position,
    )
    stored = await repository.mutate(db, engine, engine.directory.register_sponsor, current_user.as_actor(), sponsor)
    return _sponsor_to_response(stored)


async def approve_sponsor(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    sponsor_id: str,
) -> SponsorResponse:
    sponsor = await repository.mutate(db, engine, engine.directory.approve_sponsor, current_user.as_actor(), sponsor_id)
    return _sponsor_to_response(sponsor)


async def reject_sponsor(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    sponsor_id: str,
) -> SponsorResponse:
    sponsor = await repository.mutate(db, engine, engine.directory.reject_sponsor, current_user.as_actor(), sponsor_id)
    return _sponsor_to_response(sponsor)


def get_my_sponsor_account(engine: PlacementEngine, current_user: CurrentUser) -> SponsorResponse:
    return _sponsor_to_response(engine.directory.get_sponsor(current_user.id))


def list_pending_sponsors(engine: PlacementEngine) -> List[SponsorResponse]:
    return [_sponsor_to_response(s) for s in engine.directory.pending_sponsors()]


def list_students(engine: PlacementEngine) -> List[StudentResponse]:
    return [_student_to_response(s) for s in sorted(engine.directory.students(), key=lambda s: s.id)]
