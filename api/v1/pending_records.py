"""Pending records API - professional submissions and guardian review"""
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_co_authorship, get_user_id
from domain.errors import NotAuthorized
from domain.models import HealthRecordPayload
from domain.models.pending_health_record import PendingHealthRecordRead
from domain.services import CoAuthorship

router = APIRouter()


class SubmitPendingRecordRequest(BaseModel):
    pet_id: UUID
    professional_id: UUID
    record: HealthRecordPayload


class ResolvePendingRecordRequest(BaseModel):
    status: Literal["approved", "rejected"]


@router.post("", response_model=PendingHealthRecordRead, status_code=201)
async def submit_pending_record(
    req: SubmitPendingRecordRequest,
    user_id: Optional[UUID] = Depends(get_user_id),
    co_authorship: CoAuthorship = Depends(get_co_authorship),
):
    if user_id is not None and user_id != req.professional_id:
        raise NotAuthorized("Cannot submit records on behalf of another professional")
    return await co_authorship.submit(req.pet_id, req.professional_id, req.record)


@router.patch("/{pending_id}", response_model=PendingHealthRecordRead)
async def resolve_pending_record(
    pending_id: UUID,
    req: ResolvePendingRecordRequest,
    user_id: Optional[UUID] = Depends(get_user_id),
    co_authorship: CoAuthorship = Depends(get_co_authorship),
):
    return await co_authorship.resolve(pending_id, req.status, guardian_id=user_id)


@router.get("/pets/{pet_id}", response_model=List[PendingHealthRecordRead])
async def list_pending_records(
    pet_id: UUID,
    co_authorship: CoAuthorship = Depends(get_co_authorship),
):
    """Submissions still waiting for the guardian, newest first"""
    return await co_authorship.list_pending(pet_id)


@router.get("/professionals/{professional_id}", response_model=List[PendingHealthRecordRead])
async def list_professional_submissions(
    professional_id: UUID,
    status: Optional[Literal["pending", "approved", "rejected"]] = Query(None),
    co_authorship: CoAuthorship = Depends(get_co_authorship),
):
    return await co_authorship.list_for_professional(professional_id, status=status)
