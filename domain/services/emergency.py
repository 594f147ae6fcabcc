"""Emergency override - immediate, consent-free access for critical care.

The override skips the approval authority on purpose: no access request is
created and the guardian is not asked. It opens a short temporary grant,
sends the professional the critical data, and leaves an audit row behind.
"""
from datetime import timedelta
from typing import List, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ConfigDict, Field

from domain.errors import NotAuthorized
from domain.models import EmergencyLog, HealthAccessGrant, Pet
from domain.models.emergency_log import EmergencyLogCreate
from domain.models.grant import KIND_TEMPORARY, SOURCE_EMERGENCY
from domain.services.base import AccessService

logger = structlog.get_logger(__name__)

NOT_REPORTED = "none reported"


class EmergencyAlertData(BaseModel):
    """Critical data forwarded to the professional with the alert"""
    model_config = ConfigDict(populate_by_name=True)

    pet_name: Optional[str] = Field(default=None, alias="petName")
    allergies: Optional[str] = None
    medications: Optional[str] = None


class EmergencyOverride(AccessService):
    @staticmethod
    def _actor_type(pet: Pet, professional_id: UUID, triggered_by: Optional[UUID]) -> str:
        """Audit actor of an override. Only the two parties of the grant may open one."""
        if triggered_by is None:
            return "system"
        if triggered_by == pet.guardian_id:
            return "guardian"
        if triggered_by == professional_id:
            return "professional"
        raise NotAuthorized("Only the guardian or the attending professional can trigger an emergency")

    async def trigger_emergency(
        self,
        pet_id: UUID,
        professional_id: UUID,
        emergency_payload: Union[EmergencyAlertData, dict, None] = None,
        triggered_by: Optional[UUID] = None,
    ) -> HealthAccessGrant:
        if not isinstance(emergency_payload, EmergencyAlertData):
            emergency_payload = EmergencyAlertData.model_validate(emergency_payload or {})

        async with self.transaction() as outbox:
            pet = await self.get_pet(pet_id)
            await self.ensure_professional(professional_id)
            actor_type = self._actor_type(pet, professional_id, triggered_by)

            now = self.clock()
            grant = HealthAccessGrant(
                kind=KIND_TEMPORARY,
                source=SOURCE_EMERGENCY,
                pet_id=pet_id,
                professional_id=professional_id,
                expires_at=now + timedelta(hours=self.settings.emergency_access_ttl_hours),
                created_at=now,
                updated_at=now,
            )
            await self.repo.add(grant)

            pet_name = emergency_payload.pet_name or pet.name
            allergies = emergency_payload.allergies or NOT_REPORTED
            medications = emergency_payload.medications or NOT_REPORTED
            await self.notify(
                outbox,
                recipient_id=professional_id,
                notification_type="emergency_alert",
                message=(
                    f"EMERGENCY: {pet_name} is in critical care. "
                    f"Allergies: {allergies}. Medications: {medications}."
                ),
                pet_id=pet_id,
                related_user_id=pet.guardian_id,
                related_resource_id=grant.id,
                extra_data={"allergies": allergies, "medications": medications},
            )
            await self.audit(
                action="emergency_override",
                actor_type=actor_type,
                actor_id=triggered_by,
                pet_id=pet_id,
                resource_type="health_access_grant",
                resource_id=grant.id,
                message="Temporary access granted without guardian approval",
                extra_data={
                    "professional_id": str(professional_id),
                    "expires_at": grant.expires_at.isoformat(),
                },
            )

        logger.warning(
            "emergency_override",
            pet_id=str(pet_id),
            professional_id=str(professional_id),
            grant_id=str(grant.id),
            expires_at=grant.expires_at.isoformat(),
        )
        return grant

    async def log_emergency(self, pet_id: UUID, user_id: UUID, data: EmergencyLogCreate) -> EmergencyLog:
        """Guardian-side record of a critical occurrence"""
        async with self.transaction():
            pet = await self.get_pet(pet_id)
            self.ensure_guardian(pet, user_id)

            entry = EmergencyLog(
                pet_id=pet_id,
                user_id=user_id,
                description=data.description,
                location=data.location,
                contact_phone=data.contact_phone,
                created_at=self.clock(),
            )
            await self.repo.add(entry)
            await self.audit(
                action="log_emergency",
                actor_type="guardian",
                actor_id=user_id,
                pet_id=pet_id,
                resource_type="emergency_log",
                resource_id=entry.id,
            )

        logger.info("emergency_logged", pet_id=str(pet_id), emergency_log_id=str(entry.id))
        return entry

    async def list_emergency_logs(self, pet_id: UUID) -> List[EmergencyLog]:
        await self.get_pet(pet_id)
        logs = await self.repo.find(EmergencyLog, pet_id=pet_id)
        return sorted(logs, key=lambda log: log.created_at, reverse=True)
