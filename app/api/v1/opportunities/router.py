from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.applications.schemas import ApplicationResponse
from app.api.v1.dependencies import get_engine
from app.auth.dependencies import get_current_user
from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.placement.engine import PlacementEngine

from .schemas import FilterCriteriaResponse, OpportunityCreate, OpportunityResponse, OpportunityUpdate
from . import service

router = APIRouter(prefix="/api/v1/opportunities", tags=["opportunities"])


@router.post("", response_model=OpportunityResponse, status_code=status.HTTP_201_CREATED)
async def create_opportunity(
    payload: OpportunityCreate,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> OpportunityResponse:
    """Post an internship. Approved sponsors only, at most five live postings each."""
    try:
        return await service.create_opportunity(db, engine, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("", response_model=List[OpportunityResponse])
async def list_opportunities(
    level: Optional[str] = Query(None, description="Basic, Intermediate or Advanced"),
    subject: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    closing_by: Optional[date] = Query(None, description="Closing on or before this date"),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[OpportunityResponse]:
    """Role-shaped listing, sorted by title. Students only see what they can apply for. Filters are remembered per user."""
    try:
        return service.list_opportunities(engine, current_user, level, subject, status_filter, closing_by)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/filters/me", response_model=FilterCriteriaResponse)
async def get_saved_filter(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(get_current_user),
) -> FilterCriteriaResponse:
    """Filters applied when the listing is requested without any."""
    return service.get_saved_filter(engine, current_user)


@router.delete("/filters/me", response_model=FilterCriteriaResponse)
async def reset_saved_filter(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(get_current_user),
) -> FilterCriteriaResponse:
    return service.reset_saved_filter(engine, current_user)


@router.get("/pending", response_model=List[OpportunityResponse])
async def list_pending_opportunities(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> List[OpportunityResponse]:
    """Postings waiting for a staff decision."""
    return service.list_pending_opportunities(engine)


@router.get("/{opportunity_id}", response_model=OpportunityResponse)
async def get_opportunity(
    opportunity_id: str,
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(get_current_user),
) -> OpportunityResponse:
    try:
        return service.get_opportunity(engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.patch("/{opportunity_id}", response_model=OpportunityResponse)
async def update_opportunity(
    opportunity_id: str,
    payload: OpportunityUpdate,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> OpportunityResponse:
    """Edit a posting while it is still Pending."""
    try:
        return await service.update_opportunity(db, engine, current_user, opportunity_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.delete("/{opportunity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_opportunity(
    opportunity_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> None:
    """Delete a Pending posting that nobody has applied to."""
    try:
        await service.delete_opportunity(db, engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/approve", response_model=OpportunityResponse)
async def approve_opportunity(
    opportunity_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> OpportunityResponse:
    """Approve a Pending posting; it becomes visible to students."""
    try:
        return await service.approve_opportunity(db, engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/reject", response_model=OpportunityResponse)
async def reject_opportunity(
    opportunity_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> OpportunityResponse:
    try:
        return await service.reject_opportunity(db, engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/visibility", response_model=OpportunityResponse)
async def toggle_visibility(
    opportunity_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> OpportunityResponse:
    """Flip student visibility of an Approved posting."""
    try:
        return await service.toggle_visibility(db, engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/{opportunity_id}/applications", response_model=List[ApplicationResponse])
async def list_opportunity_applications(
    opportunity_id: str,
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR, UserRole.STAFF)),
) -> List[ApplicationResponse]:
    """Applications for one posting, in submission order. Sponsors see only their own postings."""
    try:
        return service.list_opportunity_applications(engine, current_user, opportunity_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
