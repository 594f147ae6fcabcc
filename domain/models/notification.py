"""Notification model - in-app notifications produced by access transitions"""
from typing import Optional, Dict, Any
from pydantic import NaiveDatetime
from domain.clock import utcnow
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from uuid import UUID, uuid4


class NotificationBase(SQLModel):
    recipient_id: UUID = Field(foreign_key="user_profiles.id", index=True)

    # 'health_access_request', 'health_access_approved', 'health_access_rejected',
    # 'health_access_granted', 'health_access_revoked', 'emergency_alert',
    # 'pending_record_submitted', 'pending_record_approved', 'pending_record_rejected'
    notification_type: str = Field(index=True)
    message: str

    # Reference
    pet_id: Optional[UUID] = Field(foreign_key="pets.id", default=None)
    related_user_id: Optional[UUID] = Field(foreign_key="user_profiles.id", default=None)
    related_resource_id: Optional[UUID] = None

    is_read: bool = Field(default=False)

    extra_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class Notification(NotificationBase, table=True):
    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

class NotificationRead(NotificationBase):
    id: UUID
    created_at: NaiveDatetime
