"""Emergency API - guardian-side emergency log.

The emergency alert itself (consent-free temporary access) goes through the
send_emergency_alert action of the health access endpoint.
"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Header

from api.deps import get_emergency_override
from domain.models.emergency_log import EmergencyLogCreate, EmergencyLogRead
from domain.services import EmergencyOverride

router = APIRouter()


@router.post("/logs/{pet_id}", response_model=EmergencyLogRead, status_code=201)
async def log_emergency(
    pet_id: UUID,
    data: EmergencyLogCreate,
    x_user_id: UUID = Header(..., description="Guardian reporting the emergency"),
    emergency: EmergencyOverride = Depends(get_emergency_override),
):
    return await emergency.log_emergency(pet_id, x_user_id, data)


@router.get("/logs/{pet_id}", response_model=List[EmergencyLogRead])
async def list_emergency_logs(
    pet_id: UUID,
    emergency: EmergencyOverride = Depends(get_emergency_override),
):
    """Emergency history, newest first"""
    return await emergency.list_emergency_logs(pet_id)
