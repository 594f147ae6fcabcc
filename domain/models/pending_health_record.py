"""PendingHealthRecord model - professional submissions awaiting guardian review."""

from typing import Optional, Dict, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON
from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field, Column

from domain.clock import utcnow

PENDING_RECORD_PENDING = "pending"
PENDING_RECORD_APPROVED = "approved"
PENDING_RECORD_REJECTED = "rejected"


class PendingHealthRecordBase(SQLModel):
    pet_id: UUID = Field(foreign_key="pets.id", index=True)
    professional_id: UUID = Field(foreign_key="user_profiles.id", index=True)

    # Serialized HealthRecordPayload; never updated after submission
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    status: str = Field(default=PENDING_RECORD_PENDING, index=True)  # pending | approved | rejected
    resolved_at: Optional[NaiveDatetime] = None

    # Set only when approval materializes a canonical record
    health_record_id: Optional[UUID] = Field(foreign_key="health_records.id", default=None)


class PendingHealthRecord(PendingHealthRecordBase, table=True):
    __tablename__ = "pending_health_records"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)


class PendingHealthRecordRead(PendingHealthRecordBase):
    id: UUID
    created_at: NaiveDatetime
