"""Pet model - the subject of every health access decision"""
from typing import Optional
from pydantic import NaiveDatetime
from domain.clock import utcnow
from sqlmodel import SQLModel, Field
from uuid import UUID, uuid4


class PetBase(SQLModel):
    guardian_id: UUID = Field(foreign_key="user_profiles.id", index=True)
    name: str
    species: Optional[str] = None  # 'dog', 'cat', ...


class Pet(PetBase, table=True):
    __tablename__ = "pets"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)

