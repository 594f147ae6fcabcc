"""Tokens API - QR tokens the guardian shows to a professional.

The QR encodes the deep link {origin}/scan-health?token=...&petId=...; the
professional's client posts it back through the request_access action.
"""
import base64
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_token_issuer, get_user_id
from domain.models import HealthAccessToken
from domain.services import TokenIssuer
from infrastructure.qr import make_qr_png, render_health_card

router = APIRouter()

ImageFormat = Literal["qr", "card", "none"]


class AccessTokenResponse(BaseModel):
    token_id: UUID
    pet_id: UUID
    token: str
    deep_link: str
    created_at: datetime
    expires_at: datetime

    # base64 PNG, omitted with image=none
    qr_png_base64: Optional[str] = None


async def _to_response(issuer: TokenIssuer, token: HealthAccessToken, image: ImageFormat) -> AccessTokenResponse:
    link = issuer.deep_link(token)

    png: Optional[bytes] = None
    if image == "qr":
        png = make_qr_png(link)
    elif image == "card":
        pet = await issuer.get_pet(token.pet_id)
        png = render_health_card(pet_name=pet.name, deep_link=link, expires_at=token.expires_at)

    return AccessTokenResponse(
        token_id=token.id,
        pet_id=token.pet_id,
        token=token.token,
        deep_link=link,
        created_at=token.created_at,
        expires_at=token.expires_at,
        qr_png_base64=base64.b64encode(png).decode("ascii") if png else None,
    )


@router.post("/pets/{pet_id}", response_model=AccessTokenResponse, status_code=201)
async def issue_token(
    pet_id: UUID,
    image: ImageFormat = Query("qr", description="qr | card | none"),
    user_id: Optional[UUID] = Depends(get_user_id),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Mint a fresh token (earlier tokens stay valid until they expire)"""
    token = await issuer.issue_token(pet_id, guardian_id=user_id)
    return await _to_response(issuer, token, image)


@router.get("/pets/{pet_id}/active", response_model=AccessTokenResponse)
async def get_active_token(
    pet_id: UUID,
    image: ImageFormat = Query("qr", description="qr | card | none"),
    user_id: Optional[UUID] = Depends(get_user_id),
    issuer: TokenIssuer = Depends(get_token_issuer),
):
    """Newest valid token, minting one if none is live (what the QR view does on open)"""
    token = await issuer.get_or_issue(pet_id, guardian_id=user_id)
    return await _to_response(issuer, token, image)
