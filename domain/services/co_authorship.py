"""Pending-record co-authorship.

Professionals with current access submit health entries that stay out of the
canonical record until the guardian decides:

    pending --approve--> approved (terminal)
    pending --reject---> rejected (terminal)

By default approval only flips the status. With
`materialize_approved_records` enabled, approval also appends the entry to
the canonical health records, attributed to the submitting professional.
"""
from typing import List, Optional
from uuid import UUID

import structlog

from domain.errors import InvalidTransition, NotAuthorized, PendingRecordNotFound
from domain.events import (
    PENDING_RECORD_RESOLVED,
    PENDING_RECORD_SUBMITTED,
    Event,
    pet_pending_records_topic,
)
from domain.models import HealthRecord, HealthRecordPayload, PendingHealthRecord
from domain.models.pending_health_record import (
    PENDING_RECORD_APPROVED,
    PENDING_RECORD_PENDING,
    PENDING_RECORD_REJECTED,
)
from domain.services.base import AccessService
from domain.services.grants import GrantStore

logger = structlog.get_logger(__name__)

RESOLVE_ACTIONS = {
    PENDING_RECORD_APPROVED: "approve_pending_record",
    PENDING_RECORD_REJECTED: "reject_pending_record",
}


class CoAuthorship(AccessService):
    def __init__(self, *args, grant_store: Optional[GrantStore] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.grant_store = grant_store or GrantStore(self.repo, self.bus, self.settings, self.clock)

    async def submit(
        self,
        pet_id: UUID,
        professional_id: UUID,
        payload: HealthRecordPayload,
    ) -> PendingHealthRecord:
        async with self.transaction() as outbox:
            pet = await self.get_pet(pet_id)

            now = self.clock()
            if not await self.grant_store.check_access(pet_id, professional_id, now):
                raise NotAuthorized("No active health access for this pet")

            pending = PendingHealthRecord(
                pet_id=pet_id,
                professional_id=professional_id,
                payload=payload.model_dump(mode="json"),
                status=PENDING_RECORD_PENDING,
                created_at=now,
            )
            await self.repo.add(pending)

            professional_name = await self.display_name(professional_id, "A professional")
            await self.notify(
                outbox,
                recipient_id=pet.guardian_id,
                notification_type="pending_record_submitted",
                message=f"{professional_name} added '{payload.title}' to {pet.name}'s health record. Review it to confirm.",
                pet_id=pet_id,
                related_user_id=professional_id,
                related_resource_id=pending.id,
            )
            await self.audit(
                action="submit_pending_record",
                actor_type="professional",
                actor_id=professional_id,
                pet_id=pet_id,
                resource_type="pending_health_record",
                resource_id=pending.id,
            )
            outbox.append(
                Event(
                    topic=pet_pending_records_topic(pet_id),
                    type=PENDING_RECORD_SUBMITTED,
                    payload=pending.model_dump(mode="json"),
                )
            )

        logger.info(
            "pending_record_submitted",
            pending_id=str(pending.id),
            pet_id=str(pet_id),
            professional_id=str(professional_id),
        )
        return pending

    async def get(self, pending_id: UUID) -> PendingHealthRecord:
        pending = await self.repo.get(PendingHealthRecord, pending_id)
        if pending is None:
            raise PendingRecordNotFound(f"Pending health record {pending_id} not found")
        return pending

    async def resolve(
        self,
        pending_id: UUID,
        status: str,
        guardian_id: Optional[UUID] = None,
    ) -> PendingHealthRecord:
        if status not in (PENDING_RECORD_APPROVED, PENDING_RECORD_REJECTED):
            raise InvalidTransition(f"Unknown pending record status: {status}")

        async with self.transaction() as outbox:
            pending = await self.repo.get(PendingHealthRecord, pending_id, for_update=True)
            if pending is None:
                raise PendingRecordNotFound(f"Pending health record {pending_id} not found")
            pet = await self.get_pet(pending.pet_id)
            self.ensure_guardian(pet, guardian_id)

            if pending.status == status:
                return pending
            if pending.status != PENDING_RECORD_PENDING:
                raise InvalidTransition(f"Pending health record was already {pending.status}")

            now = self.clock()
            pending.status = status
            pending.resolved_at = now

            payload = HealthRecordPayload.model_validate(pending.payload)
            if status == PENDING_RECORD_APPROVED and self.settings.materialize_approved_records:
                record = HealthRecord(
                    pet_id=pending.pet_id,
                    record_type=payload.record_type,
                    title=payload.title,
                    record_date=payload.record_date,
                    notes=payload.notes,
                    allergies=payload.allergies,
                    medications=payload.medications,
                    professional_id=pending.professional_id,
                    professional_name=await self.display_name(pending.professional_id, "Authorized professional"),
                    extra_data={**payload.extra_data, "pending_record_id": str(pending.id)},
                    created_at=now,
                )
                await self.repo.add(record)
                pending.health_record_id = record.id
            await self.repo.add(pending)

            verdict = "approved" if status == PENDING_RECORD_APPROVED else "declined"
            await self.notify(
                outbox,
                recipient_id=pending.professional_id,
                notification_type=f"pending_record_{status}",
                message=f"The guardian {verdict} '{payload.title}' for {pet.name}'s health record.",
                pet_id=pet.id,
                related_user_id=pet.guardian_id,
                related_resource_id=pending.id,
            )
            await self.audit(
                action=RESOLVE_ACTIONS[status],
                actor_type="guardian",
                actor_id=guardian_id or pet.guardian_id,
                pet_id=pet.id,
                resource_type="pending_health_record",
                resource_id=pending.id,
                extra_data={"health_record_id": str(pending.health_record_id) if pending.health_record_id else None},
            )
            outbox.append(
                Event(
                    topic=pet_pending_records_topic(pet.id),
                    type=PENDING_RECORD_RESOLVED,
                    payload=pending.model_dump(mode="json"),
                )
            )

        logger.info(
            "pending_record_resolved",
            pending_id=str(pending_id),
            status=status,
            health_record_id=str(pending.health_record_id) if pending.health_record_id else None,
        )
        return pending

    async def list_pending(self, pet_id: UUID) -> List[PendingHealthRecord]:
        records = await self.repo.find(PendingHealthRecord, pet_id=pet_id, status=PENDING_RECORD_PENDING)
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def list_for_professional(
        self,
        professional_id: UUID,
        status: Optional[str] = None,
    ) -> List[PendingHealthRecord]:
        filters = {"professional_id": professional_id}
        if status:
            filters["status"] = status
        records = await self.repo.find(PendingHealthRecord, **filters)
        return sorted(records, key=lambda r: r.created_at, reverse=True)
