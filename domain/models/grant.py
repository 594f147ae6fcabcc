"""HealthAccessGrant model - one table for both authorization paths.

kind="persistent": requested from the pet profile, resolved by the guardian.
    status: pending -> granted -> revoked -> pending (re-request) ...
    granted_at / revoked_at are mutually exclusive.

kind="temporary": created by a QR approval (source="qr_approval") or by the
    emergency override (source="emergency"). Carries expires_at and is never
    revoked or deleted; expiry is its only termination.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import NaiveDatetime
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field

from domain.clock import utcnow

KIND_PERSISTENT = "persistent"
KIND_TEMPORARY = "temporary"

GRANT_NONE = "none"  # reported for a pair without a persistent grant row
GRANT_PENDING = "pending"
GRANT_GRANTED = "granted"
GRANT_REVOKED = "revoked"

SOURCE_PROFILE = "profile"
SOURCE_QR_APPROVAL = "qr_approval"
SOURCE_EMERGENCY = "emergency"


class HealthAccessGrantBase(SQLModel):
    kind: str = Field(index=True)  # persistent | temporary
    pet_id: UUID = Field(foreign_key="pets.id", index=True)
    professional_id: UUID = Field(foreign_key="user_profiles.id", index=True)
    source: str = Field(default=SOURCE_PROFILE)

    # persistent only
    status: Optional[str] = Field(default=None, index=True)
    granted_at: Optional[NaiveDatetime] = None
    revoked_at: Optional[NaiveDatetime] = None

    # temporary only
    expires_at: Optional[NaiveDatetime] = None
    request_id: Optional[UUID] = Field(foreign_key="health_access_requests.id", default=None, index=True)


class HealthAccessGrant(HealthAccessGrantBase, table=True):
    __tablename__ = "health_access_grants"
    __table_args__ = (
        # at most one persistent grant per pet/professional pair
        Index(
            "uq_health_access_grants_persistent_pair",
            "pet_id",
            "professional_id",
            unique=True,
            postgresql_where=text("kind = 'persistent'"),
            sqlite_where=text("kind = 'persistent'"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    created_at: NaiveDatetime = Field(default_factory=utcnow)
    updated_at: NaiveDatetime = Field(default_factory=utcnow)

    def is_active(self, now: datetime) -> bool:
        if self.kind == KIND_TEMPORARY:
            return self.expires_at is not None and now < self.expires_at
        return self.status == GRANT_GRANTED


class HealthAccessGrantRead(HealthAccessGrantBase):
    id: UUID
    created_at: NaiveDatetime
    updated_at: NaiveDatetime


class HealthAccessStatusRead(SQLModel):
    pet_id: UUID
    professional_id: UUID
    status: str  # none | pending | granted | revoked
    grant_id: Optional[UUID] = None
    has_temporary_access: bool = False
    temporary_expires_at: Optional[NaiveDatetime] = None
