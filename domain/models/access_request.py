"""HealthAccessRequest model - handshake record created when a professional scans a QR."""

from typing import Optional
from uuid import UUID, uuid4

from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field

from domain.clock import utcnow

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"


class HealthAccessRequestBase(SQLModel):
    pet_id: UUID = Field(foreign_key="pets.id", index=True)
    professional_id: UUID = Field(foreign_key="user_profiles.id", index=True)

    # pending -> approved | rejected, exactly once
    status: str = Field(default=REQUEST_PENDING, index=True)
    resolved_at: Optional[NaiveDatetime] = None


class HealthAccessRequest(HealthAccessRequestBase, table=True):
    __tablename__ = "health_access_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status != REQUEST_PENDING


class HealthAccessRequestRead(HealthAccessRequestBase):
    id: UUID
    created_at: NaiveDatetime
