"""HealthRecord model - canonical health entries (append-only from this service)"""
from typing import Optional, Dict, Any
from datetime import date
from pydantic import NaiveDatetime
from domain.clock import utcnow
from sqlmodel import SQLModel, Field, Column
from sqlalchemy import JSON
from uuid import UUID, uuid4


class HealthRecordPayload(SQLModel):
    """Fields a professional or guardian supplies for a health entry"""
    title: str = Field(min_length=1)
    record_type: str = "consultation"  # 'consultation', 'vaccine', 'exam', 'medication', ...
    record_date: date = Field(default_factory=date.today)
    notes: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict)


class HealthRecordBase(SQLModel):
    pet_id: UUID = Field(foreign_key="pets.id", index=True)
    record_type: str = Field(index=True)
    title: str
    record_date: date
    notes: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None

    # Attribution
    professional_id: Optional[UUID] = Field(foreign_key="user_profiles.id", default=None)
    professional_name: Optional[str] = None

    extra_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class HealthRecord(HealthRecordBase, table=True):
    __tablename__ = "health_records"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

