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

from .schemas import SponsorRegister, SponsorResponse, StudentRegister, StudentResponse
from . import service

router = APIRouter(prefix="/api/v1/directory", tags=["directory"])


@router.post("/students", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def register_student(
    payload: StudentRegister,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> StudentResponse:
    """Add or replace a student profile (year of study and subject drive eligibility)."""
    try:
        return await service.register_student(db, engine, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/students", response_model=List[StudentResponse])
async def list_students(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> List[StudentResponse]:
    return service.list_students(engine)


@router.post("/sponsors/me", response_model=SponsorResponse, status_code=status.HTTP_201_CREATED)
async def register_sponsor(
    payload: SponsorRegister,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> SponsorResponse:
    """Register the caller's sponsor account. Postings are blocked until staff approve it."""
    try:
        return await service.register_sponsor(db, engine, current_user, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/sponsors/me", response_model=SponsorResponse)
async def get_my_sponsor_account(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.SPONSOR)),
) -> SponsorResponse:
    try:
        return service.get_my_sponsor_account(engine, current_user)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/sponsors/pending", response_model=List[SponsorResponse])
async def list_pending_sponsors(
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> List[SponsorResponse]:
    return service.list_pending_sponsors(engine)


@router.post("/sponsors/{sponsor_id}/approve", response_model=SponsorResponse)
async def approve_sponsor(
    sponsor_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> SponsorResponse:
    try:
        return await service.approve_sponsor(db, engine, current_user, sponsor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/sponsors/{sponsor_id}/reject", response_model=SponsorResponse)
async def reject_sponsor(
    sponsor_id: str,
    db: AsyncSession = Depends(get_db),
    engine: PlacementEngine = Depends(get_engine),
    current_user: CurrentUser = Depends(require_roles(UserRole.STAFF)),
) -> SponsorResponse:
    try:
        return await service.reject_sponsor(db, engine, current_user, sponsor_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
