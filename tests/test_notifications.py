"""
Notification inbox: listing and mark-read.
"""
from uuid import uuid4

import pytest

from domain.errors import NotAuthorized, NotificationNotFound
from domain.services import AccessRequestManager, NotificationInbox


async def test_each_party_sees_own_notifications(pending_request, approval, make, people, clock):
    clock.advance(minutes=3)
    await approval.approve(pending_request.id)

    guardian_inbox = await make(NotificationInbox).list_for(people.guardian.id)
    professional_inbox = await make(NotificationInbox).list_for(people.professional.id)

    assert [n.notification_type for n in guardian_inbox] == ["health_access_request"]
    assert [n.notification_type for n in professional_inbox] == ["health_access_approved"]


async def test_mark_read(pending_request, make, people):
    notification = (await make(NotificationInbox).list_for(people.guardian.id))[0]

    read = await make(NotificationInbox).mark_read(notification.id, people.guardian.id)

    assert read.is_read
    assert await make(NotificationInbox).list_for(people.guardian.id, unread_only=True) == []


async def test_mark_read_other_users_notification(pending_request, make, people):
    notification = (await make(NotificationInbox).list_for(people.guardian.id))[0]

    with pytest.raises(NotAuthorized):
        await make(NotificationInbox).mark_read(notification.id, people.professional.id)


async def test_mark_read_unknown(inbox, people):
    with pytest.raises(NotificationNotFound):
        await inbox.mark_read(uuid4(), people.guardian.id)


async def test_limit(issuer, make, people):
    token = await issuer.issue_token(people.pet.id)
    for _ in range(3):
        await make(AccessRequestManager).request_access(people.pet.id, people.professional.id, token.token)

    assert len(await make(NotificationInbox).list_for(people.guardian.id, limit=2)) == 2

