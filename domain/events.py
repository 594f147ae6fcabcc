"""Realtime events and topic names shared by publishers and subscribers.

Payload fields are additive-only; consumers must ignore fields they do not know.
"""

from datetime import datetime
from typing import Any, Dict
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from domain.clock import utcnow

ACCESS_REQUEST_CREATED = "access_request.created"
ACCESS_REQUEST_RESOLVED = "access_request.resolved"
GRANT_STATUS_CHANGED = "grant.status_changed"
PENDING_RECORD_SUBMITTED = "pending_record.submitted"
PENDING_RECORD_RESOLVED = "pending_record.resolved"
NOTIFICATION_CREATED = "notification.created"


def pet_access_requests_topic(pet_id: UUID) -> str:
    return f"pet:{pet_id}:access-requests"


def pet_pending_records_topic(pet_id: UUID) -> str:
    return f"pet:{pet_id}:pending-records"


def request_topic(request_id: UUID) -> str:
    return f"request:{request_id}"


def user_notifications_topic(user_id: UUID) -> str:
    return f"user:{user_id}:notifications"


class Event(BaseModel):
    id: UUID = Field(default_factory=uuid4)  # dedupe key for at-least-once delivery
    topic: str
    type: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
