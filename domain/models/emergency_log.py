"""EmergencyLog model - guardian-reported critical occurrences"""
from typing import Optional
from pydantic import NaiveDatetime
from domain.clock import utcnow
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4


class EmergencyLogBase(SQLModel):
    pet_id: UUID = Field(foreign_key="pets.id", index=True)
    user_id: UUID = Field(foreign_key="user_profiles.id")
    description: str = Field(min_length=1)
    location: Optional[str] = None
    contact_phone: Optional[str] = None


class EmergencyLog(EmergencyLogBase, table=True):
    __tablename__ = "emergency_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)


class EmergencyLogCreate(SQLModel):
    description: str = Field(min_length=1)
    location: Optional[str] = None
    contact_phone: Optional[str] = None


class EmergencyLogRead(EmergencyLogBase):
    id: UUID
    created_at: NaiveDatetime
