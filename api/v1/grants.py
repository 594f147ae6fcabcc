"""Grants API - profile-initiated access, guardian decisions and the access check"""
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_grant_store, get_user_id
from domain.errors import NotAuthorized
from domain.models.grant import HealthAccessGrantRead, HealthAccessStatusRead
from domain.services import GrantStore

router = APIRouter()


class GrantRequest(BaseModel):
    pet_id: UUID
    professional_id: UUID


class GrantStatusUpdate(BaseModel):
    status: Literal["granted", "revoked"]


class AccessCheckResponse(BaseModel):
    pet_id: UUID
    professional_id: UUID
    has_access: bool


@router.post("", response_model=HealthAccessGrantRead, status_code=201)
async def request_grant(
    req: GrantRequest,
    user_id: Optional[UUID] = Depends(get_user_id),
    grants: GrantStore = Depends(get_grant_store),
):
    """Professional asks for access from the pet profile (no QR involved)"""
    if user_id is not None and user_id != req.professional_id:
        raise NotAuthorized("Cannot request access on behalf of another professional")
    return await grants.request_grant(req.pet_id, req.professional_id)


@router.patch("/{grant_id}", response_model=HealthAccessGrantRead)
async def set_grant_status(
    grant_id: UUID,
    update: GrantStatusUpdate,
    user_id: Optional[UUID] = Depends(get_user_id),
    grants: GrantStore = Depends(get_grant_store),
):
    """Guardian grants or revokes"""
    return await grants.set_status(grant_id, update.status, guardian_id=user_id)


@router.get("/check", response_model=AccessCheckResponse)
async def check_access(
    pet_id: UUID = Query(...),
    professional_id: UUID = Query(...),
    grants: GrantStore = Depends(get_grant_store),
):
    has_access = await grants.check_access(pet_id, professional_id)
    return AccessCheckResponse(pet_id=pet_id, professional_id=professional_id, has_access=has_access)


@router.get("/status", response_model=HealthAccessStatusRead)
async def get_grant_status(
    pet_id: UUID = Query(...),
    professional_id: UUID = Query(...),
    grants: GrantStore = Depends(get_grant_store),
):
    return await grants.get_status(pet_id, professional_id)


@router.get("/pets/{pet_id}/pending", response_model=List[HealthAccessGrantRead])
async def list_pending_grants(
    pet_id: UUID,
    grants: GrantStore = Depends(get_grant_store),
):
    return await grants.list_pending(pet_id)
