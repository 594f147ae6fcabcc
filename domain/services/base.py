"""Shared plumbing for the access-control components.

Every mutating operation runs inside `transaction()`: writes, notification
rows and audit rows are staged on the repository and committed together;
any exception rolls all of them back. Realtime events collected in the
outbox are published only after the commit succeeded.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from uuid import UUID

from config import Settings, settings as app_settings
from domain.clock import Clock, utcnow
from domain.errors import NotAuthorized, PetNotFound
from domain.events import Event, NOTIFICATION_CREATED, user_notifications_topic
from domain.models import AuditLog, Notification, Pet, Profile
from infrastructure.database.repository import Repository
from infrastructure.realtime.bus import SignalBus

PROFESSIONAL_ACCOUNT = "professional"


class AccessService:
    def __init__(
        self,
        repo: Repository,
        bus: SignalBus,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ):
        self.repo = repo
        self.bus = bus
        self.settings = settings or app_settings
        self.clock = clock

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[List[Event]]:
        outbox: List[Event] = []
        try:
            yield outbox
            await self.repo.commit()
        except BaseException:
            # CancelledError included: row locks must not outlive the task
            await self.repo.rollback()
            raise

        for event in outbox:
            await self.bus.publish(event.topic, event)

    # === Directory (profile/identity collaborator) ===

    async def get_pet(self, pet_id: UUID, for_update: bool = False) -> Pet:
        pet = await self.repo.get(Pet, pet_id, for_update=for_update)
        if pet is None:
            raise PetNotFound(f"Pet {pet_id} not found")
        return pet

    async def get_profile(self, profile_id: UUID) -> Optional[Profile]:
        return await self.repo.get(Profile, profile_id)

    async def display_name(self, profile_id: UUID, fallback: str) -> str:
        profile = await self.get_profile(profile_id)
        if profile is None:
            return fallback
        name = profile.full_name
        if profile.professional_crmv:
            name += f" (CRMV-{profile.professional_crmv_state or ''} {profile.professional_crmv})"
        return name

    async def ensure_professional(self, profile_id: UUID) -> None:
        profile = await self.get_profile(profile_id)
        if profile is None:
            raise NotAuthorized(f"Unknown professional account {profile_id}")
        if profile.account_type != PROFESSIONAL_ACCOUNT:
            raise NotAuthorized("Only professional accounts can request health access")

    @staticmethod
    def ensure_guardian(pet: Pet, actor_id: Optional[UUID]) -> None:
        if actor_id is not None and actor_id != pet.guardian_id:
            raise NotAuthorized("Only the pet's guardian can do this")

    # === Side-effect rows ===

    async def notify(
        self,
        outbox: List[Event],
        *,
        recipient_id: UUID,
        notification_type: str,
        message: str,
        pet_id: Optional[UUID] = None,
        related_user_id: Optional[UUID] = None,
        related_resource_id: Optional[UUID] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            recipient_id=recipient_id,
            notification_type=notification_type,
            message=message,
            pet_id=pet_id,
            related_user_id=related_user_id,
            related_resource_id=related_resource_id,
            extra_data=extra_data or {},
            created_at=self.clock(),
        )
        await self.repo.add(notification)
        outbox.append(
            Event(
                topic=user_notifications_topic(recipient_id),
                type=NOTIFICATION_CREATED,
                payload=notification.model_dump(mode="json"),
            )
        )
        return notification

    async def audit(
        self,
        *,
        action: str,
        actor_type: str,
        actor_id: Optional[UUID] = None,
        pet_id: Optional[UUID] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[UUID] = None,
        message: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(
            pet_id=pet_id,
            actor_type=actor_type,
            actor_id=str(actor_id) if actor_id else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            status="success",
            message=message,
            extra_data=extra_data or {},
            created_at=self.clock(),
        )
        await self.repo.add(entry)
        return entry
