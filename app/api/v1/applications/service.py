"""Application submit, decide, accept and withdrawal protocol over the placement engine."""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.schemas import CurrentUser
from app.core.exceptions import InvalidTransition
from app.placement import repository
from app.placement.engine import PlacementEngine
from app.placement.entities import Application

from .schemas import ApplicationDecision, ApplicationResponse, ApplicationSubmit


def application_to_response(engine: PlacementEngine, a: Application) -> ApplicationResponse:
    opp = engine.opportunities.find(a.opportunity_id)
    return ApplicationResponse(
        student_id=a.student_id,
        opportunity_id=a.opportunity_id,
        opportunity_title=opp.title if opp else None,
        status=a.status,
        withdrawal_requested=a.withdrawal_requested,
        submitted_at=a.submitted_at,
    )


async def submit_application(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    payload: ApplicationSubmit,
) -> ApplicationResponse:
    app = await repository.mutate(
        db, engine, engine.applications.submit, current_user.as_actor(), payload.opportunity_id
    )
    return application_to_response(engine, app)


async def decide_application(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    student_id: str,
    payload: ApplicationDecision,
) -> ApplicationResponse:
    app = await repository.mutate(
        db,
        engine,
        engine.applications.decide,
        current_user.as_actor(),
        (student_id, opportunity_id),
        payload.outcome,
    )
    return application_to_response(engine, app)


async def accept_offer(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    student_id: str,
) -> ApplicationResponse:
    """Accept a Successful offer. A refused accept surfaces as InvalidTransition."""
    key = (student_id, opportunity_id)
    accepted = await repository.mutate(db, engine, engine.applications.accept, current_user.as_actor(), key)
    if not accepted:
        raise InvalidTransition(
            "Offer cannot be accepted: it must be Successful, have no pending withdrawal, "
            "and you must not already hold a placement"
        )
    return application_to_response(engine, engine.applications.get(key))


async def request_withdrawal(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    student_id: str,
) -> ApplicationResponse:
    app = await repository.mutate(
        db,
        engine,
        engine.applications.request_withdrawal,
        current_user.as_actor(),
        (student_id, opportunity_id),
    )
    return application_to_response(engine, app)


async def approve_withdrawal(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    student_id: str,
) -> None:
    await repository.mutate(
        db, engine, engine.applications.approve_withdrawal, current_user.as_actor(), (student_id, opportunity_id)
    )


async def reject_withdrawal(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    student_id: str,
) -> ApplicationResponse:
    app = await repository.mutate(
        db, engine, engine.applications.reject_withdrawal, current_user.as_actor(), (student_id, opportunity_id)
    )
    return application_to_response(engine, app)


def list_my_applications(engine: PlacementEngine, current_user: CurrentUser) -> List[ApplicationResponse]:
    return [application_to_response(engine, a) for a in engine.applications.by_student(current_user.id)]


def list_withdrawal_requests(engine: PlacementEngine) -> List[ApplicationResponse]:
    return [application_to_response(engine, a) for a in engine.applications.all_withdrawal_requests()]
