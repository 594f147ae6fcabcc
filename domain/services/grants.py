"""Grant store - profile-initiated grants, revocation and the access check.

Persistent grants (one row per pet/professional pair):

    none --request--> pending --grant--> granted --revoke--> revoked
    pending --revoke--> revoked
    revoked --request--> pending

Temporary grants are written by approval and the emergency override; this
module only reads them. `check_access` consults both kinds.
"""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError

from domain.clock import to_naive_utc
from domain.errors import GrantNotFound, InvalidTransition
from domain.events import GRANT_STATUS_CHANGED, Event, pet_access_requests_topic
from domain.models import HealthAccessGrant
from domain.models.grant import (
    GRANT_GRANTED,
    GRANT_NONE,
    GRANT_PENDING,
    GRANT_REVOKED,
    KIND_PERSISTENT,
    KIND_TEMPORARY,
    SOURCE_PROFILE,
    HealthAccessStatusRead,
)
from domain.services.base import AccessService

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS = {
    (GRANT_PENDING, GRANT_GRANTED),
    (GRANT_PENDING, GRANT_REVOKED),
    (GRANT_GRANTED, GRANT_REVOKED),
}


class GrantStore(AccessService):
    async def _persistent_grant(self, pet_id: UUID, professional_id: UUID) -> Optional[HealthAccessGrant]:
        grants = await self.repo.find(
            HealthAccessGrant,
            kind=KIND_PERSISTENT,
            pet_id=pet_id,
            professional_id=professional_id,
        )
        return grants[0] if grants else None

    def _event(self, grant: HealthAccessGrant) -> Event:
        return Event(
            topic=pet_access_requests_topic(grant.pet_id),
            type=GRANT_STATUS_CHANGED,
            payload=grant.model_dump(mode="json"),
        )

    async def request_grant(self, pet_id: UUID, professional_id: UUID) -> HealthAccessGrant:
        """Ask the guardian for persistent access from the pet profile.

        A pending or granted pair is returned unchanged; a revoked pair goes
        back to pending. Concurrent requests for the pair end up on one row.
        """
        try:
            return await self._request_grant(pet_id, professional_id)
        except IntegrityError:
            # another unit inserted the pair first
            grant = await self._persistent_grant(pet_id, professional_id)
            if grant is None:
                raise
            logger.info("grant_request_deduplicated", grant_id=str(grant.id))
            return grant

    async def _request_grant(self, pet_id: UUID, professional_id: UUID) -> HealthAccessGrant:
        async with self.transaction() as outbox:
            # pet row lock serializes requests for the same pet
            pet = await self.get_pet(pet_id, for_update=True)
            await self.ensure_professional(professional_id)

            grant = await self._persistent_grant(pet_id, professional_id)
            if grant is not None and grant.status in (GRANT_PENDING, GRANT_GRANTED):
                return grant

            now = self.clock()
            if grant is None:
                grant = HealthAccessGrant(
                    kind=KIND_PERSISTENT,
                    source=SOURCE_PROFILE,
                    pet_id=pet_id,
                    professional_id=professional_id,
                    status=GRANT_PENDING,
                    created_at=now,
                    updated_at=now,
                )
            else:
                grant.status = GRANT_PENDING
                grant.granted_at = None
                grant.revoked_at = None
                grant.updated_at = now
            await self.repo.add(grant)

            professional_name = await self.display_name(professional_id, "A professional")
            await self.notify(
                outbox,
                recipient_id=pet.guardian_id,
                notification_type="health_access_request",
                message=f"{professional_name} requested access to {pet.name}'s health record.",
                pet_id=pet_id,
                related_user_id=professional_id,
                related_resource_id=grant.id,
            )
            await self.audit(
                action="request_grant",
                actor_type="professional",
                actor_id=professional_id,
                pet_id=pet_id,
                resource_type="health_access_grant",
                resource_id=grant.id,
            )
            outbox.append(self._event(grant))

        logger.info("grant_status_changed", grant_id=str(grant.id), status=GRANT_PENDING)
        return grant

    async def get_grant(self, grant_id: UUID) -> HealthAccessGrant:
        grant = await self.repo.get(HealthAccessGrant, grant_id)
        if grant is None or grant.kind != KIND_PERSISTENT:
            raise GrantNotFound(f"Access grant {grant_id} not found")
        return grant

    async def set_status(self, grant_id: UUID, status: str, guardian_id: Optional[UUID] = None) -> HealthAccessGrant:
        """Guardian decision on a persistent grant: 'granted' or 'revoked'.

        granted sets granted_at and clears revoked_at; revoked does the
        opposite. Setting the current status again is a no-op.
        """
        if status not in (GRANT_GRANTED, GRANT_REVOKED):
            raise InvalidTransition(f"Unknown grant status: {status}")

        async with self.transaction() as outbox:
            grant = await self.repo.get(HealthAccessGrant, grant_id, for_update=True)
            if grant is None or grant.kind != KIND_PERSISTENT:
                raise GrantNotFound(f"Access grant {grant_id} not found")
            pet = await self.get_pet(grant.pet_id)
            self.ensure_guardian(pet, guardian_id)

            if grant.status == status:
                return grant
            if (grant.status, status) not in ALLOWED_TRANSITIONS:
                raise InvalidTransition(f"Cannot move access grant from {grant.status} to {status}")

            previous = grant.status
            now = self.clock()
            grant.status = status
            grant.updated_at = now
            if status == GRANT_GRANTED:
                grant.granted_at = now
                grant.revoked_at = None
                message = f"Your access to {pet.name}'s health record was granted!"
            else:
                grant.revoked_at = now
                grant.granted_at = None
                message = f"Your access to {pet.name}'s health record was revoked."
            await self.repo.add(grant)

            await self.notify(
                outbox,
                recipient_id=grant.professional_id,
                notification_type=f"health_access_{status}",
                message=message,
                pet_id=pet.id,
                related_user_id=pet.guardian_id,
                related_resource_id=grant.id,
            )
            await self.audit(
                action="grant_access" if status == GRANT_GRANTED else "revoke_access",
                actor_type="guardian",
                actor_id=guardian_id or pet.guardian_id,
                pet_id=pet.id,
                resource_type="health_access_grant",
                resource_id=grant.id,
                extra_data={"from": previous, "to": status},
            )
            outbox.append(self._event(grant))

        logger.info("grant_status_changed", grant_id=str(grant_id), previous=previous, status=status)
        return grant

    async def revoke(self, grant_id: UUID, guardian_id: Optional[UUID] = None) -> HealthAccessGrant:
        """End a pending or granted persistent grant; the professional must request again."""
        return await self.set_status(grant_id, GRANT_REVOKED, guardian_id=guardian_id)

    async def check_access(self, pet_id: UUID, professional_id: UUID, now: Optional[datetime] = None) -> bool:
        """True if a granted persistent grant or an unexpired temporary grant exists for the pair"""
        now = to_naive_utc(now) if now else self.clock()
        grants = await self.repo.find(HealthAccessGrant, pet_id=pet_id, professional_id=professional_id)
        return any(grant.is_active(now) for grant in grants)

    async def get_status(
        self,
        pet_id: UUID,
        professional_id: UUID,
        now: Optional[datetime] = None,
    ) -> HealthAccessStatusRead:
        now = to_naive_utc(now) if now else self.clock()
        grants = await self.repo.find(HealthAccessGrant, pet_id=pet_id, professional_id=professional_id)

        persistent = next((g for g in grants if g.kind == KIND_PERSISTENT), None)
        temporary = [g for g in grants if g.kind == KIND_TEMPORARY and g.is_active(now)]
        latest_expiry = max((g.expires_at for g in temporary), default=None)

        return HealthAccessStatusRead(
            pet_id=pet_id,
            professional_id=professional_id,
            status=persistent.status if persistent else GRANT_NONE,
            grant_id=persistent.id if persistent else None,
            has_temporary_access=bool(temporary),
            temporary_expires_at=latest_expiry,
        )

    async def list_pending(self, pet_id: UUID) -> List[HealthAccessGrant]:
        grants = await self.repo.find(HealthAccessGrant, pet_id=pet_id, kind=KIND_PERSISTENT, status=GRANT_PENDING)
        return sorted(grants, key=lambda g: g.updated_at)
