"""Approval authority - guardian side of the QR handshake.

    pending --approve--> approved (terminal)
    pending --reject---> rejected (terminal)

Both operations are idempotent under duplicate delivery: re-approving an
approved request returns the grant it already produced, re-rejecting a
rejected request returns it unchanged. Crossing terminals is refused.
"""
from datetime import timedelta
from typing import Optional
from uuid import UUID

import structlog

from domain.errors import InvalidTransition, RequestNotFound
from domain.events import ACCESS_REQUEST_RESOLVED, Event, request_topic
from domain.models import HealthAccessGrant, HealthAccessRequest, HealthRecord
from domain.models.access_request import REQUEST_APPROVED, REQUEST_REJECTED
from domain.models.grant import KIND_TEMPORARY, SOURCE_QR_APPROVAL
from domain.services.base import AccessService

logger = structlog.get_logger(__name__)

CONSULTATION_RECORD_TYPE = "consultation"


class ApprovalAuthority(AccessService):
    async def _load_for_decision(self, request_id: UUID, guardian_id: Optional[UUID]):
        request = await self.repo.get(HealthAccessRequest, request_id, for_update=True)
        if request is None:
            raise RequestNotFound(f"Access request {request_id} not found")
        pet = await self.get_pet(request.pet_id)
        self.ensure_guardian(pet, guardian_id)
        return request, pet

    async def _grant_for(self, request: HealthAccessRequest) -> Optional[HealthAccessGrant]:
        grants = await self.repo.find(HealthAccessGrant, request_id=request.id, kind=KIND_TEMPORARY)
        return grants[0] if grants else None

    async def approve(self, request_id: UUID, guardian_id: Optional[UUID] = None) -> HealthAccessGrant:
        """Approve a pending request and open a temporary access window.

        In one unit of work: marks the request approved, creates the temporary
        grant, appends an automatic consultation record attributed to the
        professional, and notifies the professional. The resolution event goes
        out on `request:{requestId}` after the commit.
        """
        async with self.transaction() as outbox:
            request, pet = await self._load_for_decision(request_id, guardian_id)

            if request.status == REQUEST_REJECTED:
                raise InvalidTransition("Access request was already rejected")
            if request.status == REQUEST_APPROVED:
                existing = await self._grant_for(request)
                if existing is not None:
                    logger.info("access_request_approve_duplicate", request_id=str(request_id))
                    return existing

            now = self.clock()
            request.status = REQUEST_APPROVED
            request.resolved_at = now
            await self.repo.add(request)

            grant = HealthAccessGrant(
                kind=KIND_TEMPORARY,
                source=SOURCE_QR_APPROVAL,
                pet_id=request.pet_id,
                professional_id=request.professional_id,
                expires_at=now + timedelta(hours=self.settings.approval_access_ttl_hours),
                request_id=request.id,
                created_at=now,
                updated_at=now,
            )
            await self.repo.add(grant)

            professional_name = await self.display_name(request.professional_id, "Authorized professional")
            await self.repo.add(
                HealthRecord(
                    pet_id=request.pet_id,
                    record_type=CONSULTATION_RECORD_TYPE,
                    title="Consultation started via QR code",
                    record_date=now.date(),
                    notes="Access granted through the mobile-to-mobile QR flow.",
                    professional_id=request.professional_id,
                    professional_name=professional_name,
                    created_at=now,
                )
            )

            await self.notify(
                outbox,
                recipient_id=request.professional_id,
                notification_type="health_access_approved",
                message=(
                    f"Your access to {pet.name}'s health record was approved "
                    f"until {grant.expires_at:%d/%m/%Y %H:%M} UTC."
                ),
                pet_id=pet.id,
                related_user_id=pet.guardian_id,
                related_resource_id=request.id,
            )
            await self.audit(
                action="approve_access",
                actor_type="guardian",
                actor_id=guardian_id or pet.guardian_id,
                pet_id=pet.id,
                resource_type="health_access_request",
                resource_id=request.id,
                extra_data={"grant_id": str(grant.id), "expires_at": grant.expires_at.isoformat()},
            )
            outbox.append(
                Event(
                    topic=request_topic(request.id),
                    type=ACCESS_REQUEST_RESOLVED,
                    payload={**request.model_dump(mode="json"), "grant_id": str(grant.id)},
                )
            )

        logger.info(
            "access_request_approved",
            request_id=str(request_id),
            grant_id=str(grant.id),
            expires_at=grant.expires_at.isoformat(),
        )
        return grant

    async def reject(self, request_id: UUID, guardian_id: Optional[UUID] = None) -> HealthAccessRequest:
        """Reject a pending request. No grant is created."""
        async with self.transaction() as outbox:
            request, pet = await self._load_for_decision(request_id, guardian_id)

            if request.status == REQUEST_APPROVED:
                raise InvalidTransition("Access request was already approved")
            if request.status == REQUEST_REJECTED:
                logger.info("access_request_reject_duplicate", request_id=str(request_id))
                return request

            request.status = REQUEST_REJECTED
            request.resolved_at = self.clock()
            await self.repo.add(request)

            await self.notify(
                outbox,
                recipient_id=request.professional_id,
                notification_type="health_access_rejected",
                message=f"The guardian declined your request to access {pet.name}'s health record.",
                pet_id=pet.id,
                related_user_id=pet.guardian_id,
                related_resource_id=request.id,
            )
            await self.audit(
                action="reject_access",
                actor_type="guardian",
                actor_id=guardian_id or pet.guardian_id,
                pet_id=pet.id,
                resource_type="health_access_request",
                resource_id=request.id,
            )
            outbox.append(
                Event(
                    topic=request_topic(request.id),
                    type=ACCESS_REQUEST_RESOLVED,
                    payload=request.model_dump(mode="json"),
                )
            )

        logger.info("access_request_rejected", request_id=str(request_id))
        return request
