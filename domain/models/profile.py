"""Profile model - identity data owned by the auth/profile service"""
from typing import Optional
from pydantic import NaiveDatetime
from domain.clock import utcnow
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4


class ProfileBase(SQLModel):
    full_name: str
    account_type: str = Field(default="guardian")  # 'guardian', 'professional'

    # Professional registration (veterinary council)
    professional_crmv: Optional[str] = None
    professional_crmv_state: Optional[str] = None
    professional_service_type: Optional[str] = None  # 'veterinarian', 'groomer', ...
    professional_phone: Optional[str] = None


class Profile(ProfileBase, table=True):
    __tablename__ = "user_profiles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

