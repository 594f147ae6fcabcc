"""
Guardian side of the QR handshake: approve / reject, idempotency and atomicity.
"""
import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from domain.errors import InvalidTransition, NotAuthorized, RequestNotFound
from domain.events import ACCESS_REQUEST_RESOLVED, request_topic
from domain.models import AuditLog, HealthAccessGrant, HealthAccessRequest, HealthRecord, Notification
from domain.services import ApprovalAuthority, GrantStore


def _professional_notifications(store, people):
    return [n for n in store.rows(Notification) if n.recipient_id == people.professional.id]


class TestApprove:
    async def test_creates_one_day_temporary_grant(self, pending_request, approval, people, clock, store):
        grant = await approval.approve(pending_request.id)

        assert grant.kind == "temporary"
        assert grant.source == "qr_approval"
        assert grant.request_id == pending_request.id
        assert grant.pet_id == people.pet.id
        assert grant.professional_id == people.professional.id
        assert grant.expires_at == clock.now + timedelta(hours=24)
        assert [g.id for g in store.rows(HealthAccessGrant)] == [grant.id]

    async def test_marks_request_approved(self, pending_request, approval, clock, store):
        await approval.approve(pending_request.id)

        request = store.rows(HealthAccessRequest)[0]
        assert request.status == "approved"
        assert request.resolved_at == clock.now

    async def test_appends_consultation_record(self, pending_request, approval, people, clock, store):
        await approval.approve(pending_request.id)

        records = store.rows(HealthRecord)
        assert len(records) == 1
        assert records[0].record_type == "consultation"
        assert records[0].title == "Consultation started via QR code"
        assert records[0].record_date == clock.now.date()
        assert records[0].professional_id == people.professional.id
        assert records[0].professional_name == "Dr. Carlos Lima (CRMV-SP 12345)"

    async def test_notifies_professional(self, pending_request, approval, people, store):
        await approval.approve(pending_request.id)

        notifications = _professional_notifications(store, people)
        assert [n.notification_type for n in notifications] == ["health_access_approved"]
        assert "11/03/2026 12:00" in notifications[0].message

    async def test_grants_access(self, pending_request, approval, make, people, clock):
        await approval.approve(pending_request.id)

        grants = make(GrantStore)
        assert await grants.check_access(people.pet.id, people.professional.id)
        assert await grants.check_access(people.pet.id, people.professional.id, clock.now + timedelta(hours=23, minutes=59))
        assert not await grants.check_access(people.pet.id, people.professional.id, clock.now + timedelta(hours=24))
        assert not await grants.check_access(people.pet.id, people.other_professional.id)

    async def test_access_gone_after_a_day(self, pending_request, approval, make, people, clock):
        await approval.approve(pending_request.id)
        clock.advance(hours=25)

        assert not await make(GrantStore).check_access(people.pet.id, people.professional.id)

    async def test_publishes_resolution_with_grant_id(self, pending_request, approval, bus):
        async with bus.subscribe(request_topic(pending_request.id)) as sub:
            grant = await approval.approve(pending_request.id)
            event = await asyncio.wait_for(sub.get(), 1)

        assert event.type == ACCESS_REQUEST_RESOLVED
        assert event.payload["status"] == "approved"
        assert event.payload["grant_id"] == str(grant.id)

    async def test_unknown_request(self, approval):
        with pytest.raises(RequestNotFound):
            await approval.approve(uuid4())

    async def test_only_guardian_may_approve(self, pending_request, approval, people, store):
        with pytest.raises(NotAuthorized):
            await approval.approve(pending_request.id, guardian_id=people.outsider.id)

        assert store.rows(HealthAccessRequest)[0].status == "pending"
        assert store.rows(HealthAccessGrant) == []


class TestIdempotency:
    async def test_duplicate_approve_returns_same_grant(self, pending_request, make, store):
        first = await make(ApprovalAuthority).approve(pending_request.id)
        second = await make(ApprovalAuthority).approve(pending_request.id)

        assert second.id == first.id
        assert len(store.rows(HealthAccessGrant)) == 1
        assert len(store.rows(HealthRecord)) == 1

    async def test_concurrent_approvals_create_one_grant(self, pending_request, make, store):
        first, second = await asyncio.gather(
            make(ApprovalAuthority).approve(pending_request.id),
            make(ApprovalAuthority).approve(pending_request.id),
        )

        assert first.id == second.id
        assert len(store.rows(HealthAccessGrant)) == 1

    async def test_duplicate_reject_is_noop(self, pending_request, make, store):
        await make(ApprovalAuthority).reject(pending_request.id)
        request = await make(ApprovalAuthority).reject(pending_request.id)

        assert request.status == "rejected"
        assert len([n for n in store.rows(Notification) if n.notification_type == "health_access_rejected"]) == 1

    async def test_approve_after_reject_refused(self, pending_request, make, store):
        await make(ApprovalAuthority).reject(pending_request.id)

        with pytest.raises(InvalidTransition):
            await make(ApprovalAuthority).approve(pending_request.id)
        assert store.rows(HealthAccessGrant) == []

    async def test_reject_after_approve_refused(self, pending_request, make, store):
        await make(ApprovalAuthority).approve(pending_request.id)

        with pytest.raises(InvalidTransition):
            await make(ApprovalAuthority).reject(pending_request.id)
        assert store.rows(HealthAccessRequest)[0].status == "approved"


class TestReject:
    async def test_no_grant_and_no_access(self, pending_request, approval, make, people, store):
        request = await approval.reject(pending_request.id)

        assert request.status == "rejected"
        assert store.rows(HealthAccessGrant) == []
        assert store.rows(HealthRecord) == []
        assert not await make(GrantStore).check_access(people.pet.id, people.professional.id)

    async def test_notifies_professional(self, pending_request, approval, people, store):
        await approval.reject(pending_request.id)

        assert [n.notification_type for n in _professional_notifications(store, people)] == ["health_access_rejected"]
        assert "reject_access" in [a.action for a in store.rows(AuditLog)]


class FailingNotifyAuthority(ApprovalAuthority):
    async def notify(self, outbox, **kwargs):
        raise RuntimeError("notification backend down")


async def test_approve_is_all_or_nothing(pending_request, make, store, bus):
    async with bus.subscribe(request_topic(pending_request.id)) as sub:
        with pytest.raises(RuntimeError):
            await make(FailingNotifyAuthority).approve(pending_request.id)

        assert sub._queue.empty()

    assert store.rows(HealthAccessRequest)[0].status == "pending"
    assert store.rows(HealthAccessGrant) == []
    assert store.rows(HealthRecord) == []

    # the row lock was released: a retry goes through
    grant = await make(ApprovalAuthority).approve(pending_request.id)
    assert grant.request_id == pending_request.id
