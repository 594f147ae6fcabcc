"""
Pending-record co-authorship: submission gated by access, guardian resolution.
"""
import asyncio
from datetime import date
from uuid import uuid4

import pytest

from config import Settings
from domain.errors import InvalidTransition, NotAuthorized, PendingRecordNotFound, PetNotFound
from domain.events import PENDING_RECORD_RESOLVED, PENDING_RECORD_SUBMITTED, pet_pending_records_topic
from domain.models import HealthRecord, HealthRecordPayload, Notification, PendingHealthRecord
from domain.services import ApprovalAuthority, CoAuthorship, GrantStore
from infrastructure.database import InMemoryRepository


def _payload(title="Rabies booster"):
    return HealthRecordPayload(
        title=title,
        record_type="vaccine",
        record_date=date(2026, 3, 10),
        notes="Applied left shoulder",
        extra_data={"lot": "RB-2291"},
    )


@pytest.fixture
async def with_access(pending_request, make):
    return await make(ApprovalAuthority).approve(pending_request.id)


@pytest.fixture
async def submitted(with_access, co_authorship, people):
    return await co_authorship.submit(people.pet.id, people.professional.id, _payload())


class TestSubmit:
    async def test_refused_without_access(self, co_authorship, people, store):
        with pytest.raises(NotAuthorized):
            await co_authorship.submit(people.pet.id, people.professional.id, _payload())
        assert store.rows(PendingHealthRecord) == []

    async def test_refused_after_window_closes(self, with_access, make, people, clock):
        clock.advance(hours=24)

        with pytest.raises(NotAuthorized):
            await make(CoAuthorship).submit(people.pet.id, people.professional.id, _payload())

    async def test_refused_after_persistent_revocation(self, make, people):
        grant = await make(GrantStore).request_grant(people.pet.id, people.professional.id)
        await make(GrantStore).set_status(grant.id, "granted")
        await make(CoAuthorship).submit(people.pet.id, people.professional.id, _payload())

        await make(GrantStore).revoke(grant.id)

        with pytest.raises(NotAuthorized):
            await make(CoAuthorship).submit(people.pet.id, people.professional.id, _payload("Second dose"))

    async def test_unknown_pet(self, co_authorship, people):
        with pytest.raises(PetNotFound):
            await co_authorship.submit(uuid4(), people.professional.id, _payload())

    async def test_stores_pending_submission(self, submitted, people, store):
        assert submitted.status == "pending"
        assert submitted.resolved_at is None
        assert submitted.health_record_id is None
        assert submitted.payload["title"] == "Rabies booster"
        assert submitted.payload["record_date"] == "2026-03-10"

        # only the automatic consultation record from the approval
        assert [r.record_type for r in store.rows(HealthRecord)] == ["consultation"]

    async def test_notifies_guardian(self, submitted, people, store):
        notification = [n for n in store.rows(Notification) if n.notification_type == "pending_record_submitted"][0]

        assert notification.recipient_id == people.guardian.id
        assert notification.related_resource_id == submitted.id
        assert "'Rabies booster'" in notification.message

    async def test_publishes_to_pending_records_topic(self, with_access, make, people, bus):
        async with bus.subscribe(pet_pending_records_topic(people.pet.id)) as sub:
            pending = await make(CoAuthorship).submit(people.pet.id, people.professional.id, _payload())
            event = await asyncio.wait_for(sub.get(), 1)

        assert event.type == PENDING_RECORD_SUBMITTED
        assert event.payload["id"] == str(pending.id)

    async def test_listing(self, submitted, make, people, clock):
        clock.advance(minutes=10)
        newer = await make(CoAuthorship).submit(people.pet.id, people.professional.id, _payload("Deworming"))

        pending = await make(CoAuthorship).list_pending(people.pet.id)
        assert [p.id for p in pending] == [newer.id, submitted.id]

        mine = await make(CoAuthorship).list_for_professional(people.professional.id, status="pending")
        assert len(mine) == 2
        assert await make(CoAuthorship).list_for_professional(people.other_professional.id) == []


class TestResolve:
    async def test_approve_is_status_only_by_default(self, submitted, make, clock, store):
        resolved = await make(CoAuthorship).resolve(submitted.id, "approved")

        assert resolved.status == "approved"
        assert resolved.resolved_at == clock.now
        assert resolved.health_record_id is None
        assert [r.record_type for r in store.rows(HealthRecord)] == ["consultation"]

    async def test_approve_materializes_when_enabled(self, submitted, store, bus, clock, people):
        settings = Settings(materialize_approved_records=True)
        co_authorship = CoAuthorship(InMemoryRepository(store), bus, settings, clock)

        resolved = await co_authorship.resolve(submitted.id, "approved")

        record = [r for r in store.rows(HealthRecord) if r.record_type == "vaccine"][0]
        assert resolved.health_record_id == record.id
        assert record.title == "Rabies booster"
        assert record.professional_id == people.professional.id
        assert record.professional_name == "Dr. Carlos Lima (CRMV-SP 12345)"
        assert record.extra_data == {"lot": "RB-2291", "pending_record_id": str(submitted.id)}

    async def test_reject(self, submitted, make, people, store):
        resolved = await make(CoAuthorship).resolve(submitted.id, "rejected")

        assert resolved.status == "rejected"
        notification = [n for n in store.rows(Notification) if n.notification_type == "pending_record_rejected"][0]
        assert notification.recipient_id == people.professional.id

    async def test_resolution_is_final(self, submitted, make):
        await make(CoAuthorship).resolve(submitted.id, "rejected")

        with pytest.raises(InvalidTransition):
            await make(CoAuthorship).resolve(submitted.id, "approved")

    async def test_same_resolution_is_noop(self, submitted, make, store):
        await make(CoAuthorship).resolve(submitted.id, "approved")
        await make(CoAuthorship).resolve(submitted.id, "approved")

        approved = [n for n in store.rows(Notification) if n.notification_type == "pending_record_approved"]
        assert len(approved) == 1

    async def test_unknown_status(self, submitted, make):
        with pytest.raises(InvalidTransition):
            await make(CoAuthorship).resolve(submitted.id, "pending")

    async def test_unknown_record(self, make):
        with pytest.raises(PendingRecordNotFound):
            await make(CoAuthorship).resolve(uuid4(), "approved")

    async def test_only_guardian(self, submitted, make, people):
        with pytest.raises(NotAuthorized):
            await make(CoAuthorship).resolve(submitted.id, "approved", guardian_id=people.professional.id)

    async def test_resolution_allowed_after_access_ends(self, submitted, make, clock):
        clock.advance(days=3)

        resolved = await make(CoAuthorship).resolve(submitted.id, "approved")
        assert resolved.status == "approved"

    async def test_publishes_resolution(self, submitted, make, people, bus):
        async with bus.subscribe(pet_pending_records_topic(people.pet.id)) as sub:
            await make(CoAuthorship).resolve(submitted.id, "approved")
            event = await asyncio.wait_for(sub.get(), 1)

        assert event.type == PENDING_RECORD_RESOLVED
        assert event.payload["status"] == "approved"
