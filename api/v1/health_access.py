"""Health access API - single action-dispatch entry point for the QR handshake.

Body is JSON with an `action` discriminator:
- request_access        (professional scanned the QR)   -> {success, requestId}
- approve_access        (guardian approves)              -> {success, grantId, expiresAt}
- reject_access         (guardian rejects)               -> {success}
- send_emergency_alert  (guardian, critical care)        -> {success, grantId, expiresAt}

Field names are camelCase on the wire, as sent by the mobile clients.
"""
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.deps import (
    get_access_request_manager,
    get_approval_authority,
    get_emergency_override,
    get_user_id,
)
from domain.errors import NotAuthorized
from domain.models.access_request import HealthAccessRequestRead
from domain.services import (
    AccessRequestManager,
    ApprovalAuthority,
    EmergencyAlertData,
    EmergencyOverride,
)

router = APIRouter()


class _Action(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RequestAccessAction(_Action):
    action: Literal["request_access"]
    pet_id: UUID = Field(alias="petId")
    professional_id: UUID = Field(alias="professionalId")
    token: str = Field(min_length=1)


class ApproveAccessAction(_Action):
    action: Literal["approve_access"]
    request_id: UUID = Field(alias="requestId")


class RejectAccessAction(_Action):
    action: Literal["reject_access"]
    request_id: UUID = Field(alias="requestId")


class SendEmergencyAlertAction(_Action):
    action: Literal["send_emergency_alert"]
    pet_id: UUID = Field(alias="petId")
    professional_id: UUID = Field(alias="professionalId")
    emergency_data: EmergencyAlertData = Field(default_factory=EmergencyAlertData, alias="emergencyData")


HealthAccessAction = Union[RequestAccessAction, ApproveAccessAction, RejectAccessAction, SendEmergencyAlertAction]


@router.post("")
async def dispatch_action(
    body: Annotated[HealthAccessAction, Body(discriminator="action")],
    user_id: Optional[UUID] = Depends(get_user_id),
    requests: AccessRequestManager = Depends(get_access_request_manager),
    approval: ApprovalAuthority = Depends(get_approval_authority),
    emergency: EmergencyOverride = Depends(get_emergency_override),
):
    if isinstance(body, RequestAccessAction):
        if user_id is not None and user_id != body.professional_id:
            raise NotAuthorized("Cannot request access on behalf of another professional")
        request = await requests.request_access(body.pet_id, body.professional_id, body.token)
        return {"success": True, "requestId": request.id}

    if isinstance(body, ApproveAccessAction):
        grant = await approval.approve(body.request_id, guardian_id=user_id)
        return {"success": True, "grantId": grant.id, "expiresAt": grant.expires_at}

    if isinstance(body, RejectAccessAction):
        await approval.reject(body.request_id, guardian_id=user_id)
        return {"success": True}

    grant = await emergency.trigger_emergency(
        body.pet_id,
        body.professional_id,
        body.emergency_data,
        triggered_by=user_id,
    )
    return {"success": True, "grantId": grant.id, "expiresAt": grant.expires_at}


@router.get("/requests/{request_id}", response_model=HealthAccessRequestRead)
async def get_access_request(
    request_id: UUID,
    requests: AccessRequestManager = Depends(get_access_request_manager),
):
    """Current state of a request (clients re-read this after reconnecting)"""
    return await requests.get_request(request_id)


@router.get("/pets/{pet_id}/requests", response_model=List[HealthAccessRequestRead])
async def list_pending_requests(
    pet_id: UUID,
    requests: AccessRequestManager = Depends(get_access_request_manager),
):
    """Pending QR access requests awaiting the guardian"""
    return await requests.list_pending(pet_id)
