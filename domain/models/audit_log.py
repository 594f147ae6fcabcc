"""AuditLog model - append-only audit trail for access decisions."""

from typing import Optional, Dict, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON
from pydantic import NaiveDatetime
from sqlmodel import SQLModel, Field, Column

from domain.clock import utcnow


class AuditLogBase(SQLModel):
    pet_id: Optional[UUID] = Field(foreign_key="pets.id", index=True, default=None)

    actor_type: str  # guardian | professional | system
    actor_id: Optional[str] = None

    action: str  # issue_token | request_access | approve_access | emergency_override | etc.
    resource_type: Optional[str] = None
    resource_id: Optional[UUID] = None

    status: str = Field(default="success")  # success | failure
    message: Optional[str] = None
    extra_data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))


class AuditLog(AuditLogBase, table=True):
    __tablename__ = "audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

