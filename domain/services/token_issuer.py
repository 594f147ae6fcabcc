"""Token issuer - mints and validates the short-lived tokens behind the health QR code."""
import secrets
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

import structlog

from domain.clock import to_naive_utc
from domain.errors import TokenExpired, TokenInvalid
from domain.models import HealthAccessToken
from domain.services.base import AccessService

logger = structlog.get_logger(__name__)


class TokenIssuer(AccessService):
    async def issue_token(self, pet_id: UUID, guardian_id: Optional[UUID] = None) -> HealthAccessToken:
        """Mint a new token for the pet.

        Earlier tokens stay valid until they expire on their own.
        """
        async with self.transaction():
            pet = await self.get_pet(pet_id)
            self.ensure_guardian(pet, guardian_id)

            now = self.clock()
            token = HealthAccessToken(
                pet_id=pet_id,
                token=secrets.token_urlsafe(self.settings.token_bytes),
                created_at=now,
                expires_at=now + timedelta(minutes=self.settings.access_token_ttl_minutes),
            )
            await self.repo.add(token)

            await self.audit(
                action="issue_token",
                actor_type="guardian",
                actor_id=guardian_id or pet.guardian_id,
                pet_id=pet_id,
                resource_type="health_access_token",
                resource_id=token.id,
                extra_data={"expires_at": token.expires_at.isoformat()},
            )

        logger.info(
            "access_token_issued",
            pet_id=str(pet_id),
            token_id=str(token.id),
            expires_at=token.expires_at.isoformat(),
        )
        return token

    async def validate_token(
        self,
        pet_id: UUID,
        token_value: str,
        now: Optional[datetime] = None,
    ) -> HealthAccessToken:
        """Return the token if it is valid for the pet at `now`.

        Raises TokenInvalid when no token with that value exists for the pet,
        TokenExpired when it exists but now > expires_at.
        """
        now = to_naive_utc(now) if now else self.clock()
        matches = await self.repo.find(HealthAccessToken, pet_id=pet_id, token=token_value)
        if not matches:
            raise TokenInvalid("Invalid token")

        for token in matches:
            if not token.is_expired(now):
                return token
        raise TokenExpired("Token expired")

    async def active_token(self, pet_id: UUID, now: Optional[datetime] = None) -> Optional[HealthAccessToken]:
        """Newest token of the pet that is still valid, if any"""
        now = to_naive_utc(now) if now else self.clock()
        tokens = await self.repo.find(HealthAccessToken, pet_id=pet_id)
        live = [t for t in tokens if not t.is_expired(now)]
        if not live:
            return None
        return max(live, key=lambda t: t.created_at)

    async def get_or_issue(self, pet_id: UUID, guardian_id: Optional[UUID] = None) -> HealthAccessToken:
        pet = await self.get_pet(pet_id)
        self.ensure_guardian(pet, guardian_id)

        token = await self.active_token(pet_id)
        if token is not None:
            return token
        return await self.issue_token(pet_id, guardian_id=guardian_id)

    def deep_link(self, token: HealthAccessToken) -> str:
        base = (self.settings.public_base_url or "").rstrip("/")
        query = urlencode({"token": token.token, "petId": str(token.pet_id)})
        return f"{base}/scan-health?{query}"
