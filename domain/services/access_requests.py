"""Access request manager - professional side of the QR handshake.

A professional scans the guardian's QR, presents the token, and waits for the
guardian's decision on `request:{requestId}`. Requests have no TTL: one that
the guardian never answers stays pending. Token expiry only prevents new
requests; it does not touch requests already created.
"""
import asyncio
from typing import List, Optional
from uuid import UUID

import structlog

from domain.errors import RequestNotFound
from domain.events import (
    ACCESS_REQUEST_CREATED,
    ACCESS_REQUEST_RESOLVED,
    Event,
    pet_access_requests_topic,
    request_topic,
)
from domain.models import HealthAccessRequest
from domain.models.access_request import REQUEST_APPROVED, REQUEST_PENDING, REQUEST_REJECTED
from domain.services.base import AccessService
from domain.services.token_issuer import TokenIssuer

logger = structlog.get_logger(__name__)

TERMINAL_STATUSES = (REQUEST_APPROVED, REQUEST_REJECTED)


class AccessRequestManager(AccessService):
    def __init__(self, *args, token_issuer: Optional[TokenIssuer] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.token_issuer = token_issuer or TokenIssuer(self.repo, self.bus, self.settings, self.clock)

    async def request_access(self, pet_id: UUID, professional_id: UUID, token_value: str) -> HealthAccessRequest:
        """Validate the scanned token and open a pending request for the guardian.

        Raises TokenInvalid / TokenExpired without creating anything.
        """
        async with self.transaction() as outbox:
            now = self.clock()
            try:
                await self.token_issuer.validate_token(pet_id, token_value, now)
            except Exception as e:
                logger.info("access_request_refused", pet_id=str(pet_id), professional_id=str(professional_id), reason=str(e))
                raise

            pet = await self.get_pet(pet_id)
            await self.ensure_professional(professional_id)

            request = HealthAccessRequest(
                pet_id=pet_id,
                professional_id=professional_id,
                status=REQUEST_PENDING,
                created_at=now,
            )
            await self.repo.add(request)

            professional_name = await self.display_name(professional_id, "A professional")
            await self.notify(
                outbox,
                recipient_id=pet.guardian_id,
                notification_type="health_access_request",
                message=f"{professional_name} requested access to {pet.name}'s health record.",
                pet_id=pet_id,
                related_user_id=professional_id,
                related_resource_id=request.id,
            )
            await self.audit(
                action="request_access",
                actor_type="professional",
                actor_id=professional_id,
                pet_id=pet_id,
                resource_type="health_access_request",
                resource_id=request.id,
            )
            outbox.append(
                Event(
                    topic=pet_access_requests_topic(pet_id),
                    type=ACCESS_REQUEST_CREATED,
                    payload=request.model_dump(mode="json"),
                )
            )

        logger.info(
            "access_request_created",
            request_id=str(request.id),
            pet_id=str(pet_id),
            professional_id=str(professional_id),
        )
        return request

    async def get_request(self, request_id: UUID) -> HealthAccessRequest:
        request = await self.repo.get(HealthAccessRequest, request_id)
        if request is None:
            raise RequestNotFound(f"Access request {request_id} not found")
        return request

    async def list_pending(self, pet_id: UUID) -> List[HealthAccessRequest]:
        """Pending requests for a pet, oldest first.

        Guardians call this after (re)subscribing, since the bus does not replay.
        """
        requests = await self.repo.find(HealthAccessRequest, pet_id=pet_id, status=REQUEST_PENDING)
        return sorted(requests, key=lambda r: r.created_at)

    async def wait_for_resolution(self, request_id: UUID, timeout: Optional[float] = None) -> str:
        """Block until the guardian approves or rejects the request.

        Returns the terminal status. Raises asyncio.TimeoutError after `timeout`
        seconds; cancelling the awaiting task abandons the wait. The request
        itself is unaffected either way.
        """
        async with self.bus.subscribe(request_topic(request_id)) as subscription:
            # Subscribe first, then read: a resolution committed in between is
            # either visible here or delivered on the subscription.
            request = await self.get_request(request_id)
            await self.repo.refresh(request)
            if request.is_terminal:
                return request.status

            async def _next_resolution() -> str:
                while True:
                    event = await subscription.get()
                    if event.type != ACCESS_REQUEST_RESOLVED:
                        continue
                    status = event.payload.get("status")
                    if status in TERMINAL_STATUSES:
                        return status

            logger.info("access_request_waiting", request_id=str(request_id), timeout=timeout)
            return await asyncio.wait_for(_next_resolution(), timeout)
