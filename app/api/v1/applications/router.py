from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.dependencies import get_engine
from app.auth.rbac import require_roles
from app.auth.schemas import CurrentUser
from app.core.enums import UserRole
from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.placement.engine import PlacementEngine

from .schemas import ApplicationDecision, ApplicationResponse, ApplicationSubmit
from . import service

router = APIRouter(prefix="/api/v1/applications", tags=["applications"])


@router.post("", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def submit_application(
    payload: ApplicationSubmit,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
) -> ApplicationResponse:
    """Apply for an open internship. At most three Pending or Successful applications at a time."""
    try:
        return await service.submit_application(db, engine, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/my", response_model=List[ApplicationResponse])
async def list_my_applications(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
) -> List[ApplicationResponse]:
    return service.list_my_applications(engine, current_user)


@router.get("/withdrawals", response_model=List[ApplicationResponse])
async def list_withdrawal_requests(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> List[ApplicationResponse]:
    """Applications whose student has asked to withdraw."""
    return service.list_withdrawal_requests(engine)


@router.post("/{opportunity_id}/{student_id}/decision", response_model=ApplicationResponse)
async def decide_application(
    opportunity_id: str,
    student_id: str,
    payload: ApplicationDecision,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> ApplicationResponse:
    """Mark a Pending application Successful or Unsuccessful. Owning sponsor only."""
    try:
        return await service.decide_application(db, engine, current_user, opportunity_id, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/{student_id}/accept", response_model=ApplicationResponse)
async def accept_offer(
    opportunity_id: str,
    student_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
) -> ApplicationResponse:
    """Accept an offer. Every other Pending or Successful application of the student is withdrawn."""
    try:
        return await service.accept_offer(db, engine, current_user, opportunity_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/{student_id}/withdrawal", response_model=ApplicationResponse)
async def request_withdrawal(
    opportunity_id: str,
    student_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STUDENT)),
) -> ApplicationResponse:
    try:
        return await service.request_withdrawal(db, engine, current_user, opportunity_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/{student_id}/withdrawal/approve", status_code=status.HTTP_204_NO_CONTENT)
async def approve_withdrawal(
    opportunity_id: str,
    student_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> None:
    """Remove the application entirely and reopen the posting if it was Filled."""
    try:
        await service.approve_withdrawal(db, engine, current_user, opportunity_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/{opportunity_id}/{student_id}/withdrawal/reject", response_model=ApplicationResponse)
async def reject_withdrawal(
    opportunity_id: str,
    student_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> ApplicationResponse:
    try:
        return await service.reject_withdrawal(db, engine, current_user, opportunity_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
