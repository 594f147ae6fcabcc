"""HealthAccessToken model - short-lived token encoded in the health QR code."""

from datetime import datetime
from uuid import UUID, uuid4

from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field

from domain.clock import utcnow


class HealthAccessTokenBase(SQLModel):
    pet_id: UUID = Field(foreign_key="pets.id", index=True)

    # Opaque and unguessable. Not unique per pet: a pet may hold several live tokens.
    token: str = Field(index=True)
    expires_at: NaiveDatetime


class HealthAccessToken(HealthAccessTokenBase, table=True):
    __tablename__ = "health_access_tokens"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

