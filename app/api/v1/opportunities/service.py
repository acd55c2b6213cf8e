"""Opportunity create, edit, approve/reject, visibility and role-shaped listing over the placement engine."""

from datetime import date
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.applications.schemas import ApplicationResponse
from app.api.v1.applications.service import application_to_response
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import NotFound, PermissionDenied
from app.placement import repository
from app.placement.criteria import FilterCriteria
from app.placement.engine import PlacementEngine
from app.placement.entities import Opportunity

from .schemas import FilterCriteriaResponse, OpportunityCreate, OpportunityResponse, OpportunityUpdate


def _opportunity_to_response(engine: PlacementEngine, o: Opportunity) -> OpportunityResponse:
    return OpportunityResponse(
        id=o.id,
        title=o.title,
        description=o.description,
        level=o.level,
        target_subject=o.target_subject,
        opening_date=o.opening_date,
        closing_date=o.closing_date,
        sponsor_id=o.sponsor_id,
        sponsor_name=o.sponsor_name,
        slots=o.slots,
        status=o.status,
        visible=o.visible,
        application_count=len(o.applicant_ids),
        accepted_count=engine.applications.accepted_count_for(o.id),
    )


async def create_opportunity(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    payload: OpportunityCreate,
) -> OpportunityResponse:
    """Post a new opportunity; it stays Pending until staff approve it."""
    opp = await repository.mutate(
        db,
        engine,
        engine.opportunities.create,
        current_user.as_actor(),
        **payload.model_dump(),
    )
    return _opportunity_to_response(engine, opp)


async def update_opportunity(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
    payload: OpportunityUpdate,
) -> OpportunityResponse:
    opp = await repository.mutate(
        db,
        engine,
        engine.opportunities.update,
        current_user.as_actor(),
        opportunity_id,
        payload.model_dump(exclude_unset=True),
    )
    return _opportunity_to_response(engine, opp)


async def delete_opportunity(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
) -> None:
    await repository.mutate(db, engine, engine.opportunities.delete, current_user.as_actor(), opportunity_id)


async def approve_opportunity(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
) -> OpportunityResponse:
    opp = await repository.mutate(db, engine, engine.opportunities.approve, current_user.as_actor(), opportunity_id)
    return _opportunity_to_response(engine, opp)


async def reject_opportunity(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
) -> OpportunityResponse:
    opp = await repository.mutate(db, engine, engine.opportunities.reject, current_user.as_actor(), opportunity_id)
    return _opportunity_to_response(engine, opp)


async def toggle_visibility(
    db: AsyncSession,
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
) -> OpportunityResponse:
    opp = await repository.mutate(
        db, engine, engine.opportunities.toggle_visibility, current_user.as_actor(), opportunity_id
    )
    return _opportunity_to_response(engine, opp)


def list_opportunities(
    engine: PlacementEngine,
    current_user: CurrentUser,
    level: Optional[str] = None,
    subject: Optional[str] = None,
    status: Optional[str] = None,
    closing_by: Optional[date] = None,
) -> List[OpportunityResponse]:
    """
    Students see only what they are eligible for; sponsors see their own postings;
    staff see everything. Filters given in the request replace the caller's saved
    filters; with none given the saved ones apply. Raises ValueError for an
    unknown level or status.
    """
    if any(v is not None for v in (level, subject, status, closing_by)):
        criteria = FilterCriteria.build(level=level, subject=subject, status=status, closing_by=closing_by)
        engine.remember_filter(current_user.id, criteria)
    else:
        criteria = engine.saved_filter(current_user.id)
    if current_user.role == UserRole.STUDENT:
        rows = engine.visible_to_student(current_user.id, criteria)
    elif current_user.role == UserRole.SPONSOR:
        rows = engine.opportunities.filter(criteria, sponsor_id=current_user.id)
    else:
        rows = engine.opportunities.filter(criteria)
    return [_opportunity_to_response(engine, o) for o in rows]


def _criteria_to_response(criteria: FilterCriteria) -> FilterCriteriaResponse:
    return FilterCriteriaResponse(
        level=criteria.level,
        subject=criteria.subject,
        status=criteria.status,
        closing_by=criteria.closing_by,
    )


def get_saved_filter(engine: PlacementEngine, current_user: CurrentUser) -> FilterCriteriaResponse:
    return _criteria_to_response(engine.saved_filter(current_user.id))


def reset_saved_filter(engine: PlacementEngine, current_user: CurrentUser) -> FilterCriteriaResponse:
    return _criteria_to_response(engine.clear_filter(current_user.id))


def list_pending_opportunities(engine: PlacementEngine) -> List[OpportunityResponse]:
    return [_opportunity_to_response(engine, o) for o in engine.opportunities.pending()]


def get_opportunity(engine: PlacementEngine, current_user: CurrentUser, opportunity_id: str) -> OpportunityResponse:
    """Students can only open postings they are eligible to see."""
    opp = engine.opportunities.get(opportunity_id)
    if current_user.role == UserRole.STUDENT:
        if all(o.id != opp.id for o in engine.visible_to_student(current_user.id)):
            raise NotFound(f"Opportunity {opportunity_id} not found")
    elif current_user.role == UserRole.SPONSOR and opp.sponsor_id != current_user.id:
        raise PermissionDenied("Sponsors can only view their own postings")
    return _opportunity_to_response(engine, opp)


def list_opportunity_applications(
    engine: PlacementEngine,
    current_user: CurrentUser,
    opportunity_id: str,
) -> List[ApplicationResponse]:
    opp = engine.opportunities.get(opportunity_id)
    if current_user.role == UserRole.SPONSOR and opp.sponsor_id != current_user.id:
        raise PermissionDenied("Sponsors can only view applications for their own postings")
    return [application_to_response(engine, a) for a in engine.applications.by_opportunity(opportunity_id)]
