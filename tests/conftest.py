"""
Pytest configuration and fixtures for the health access service tests

Components run against the in-memory store. Each `make(...)` call gets its
own repository, the way separate HTTP requests get separate sessions.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from config import Settings
from domain.models import Pet, Profile
from domain.services import (
    AccessRequestManager,
    ApprovalAuthority,
    CoAuthorship,
    EmergencyOverride,
    GrantStore,
    NotificationInbox,
    TokenIssuer,
)
from infrastructure.database import InMemoryRepository, InMemoryStore
from infrastructure.realtime import InMemorySignalBus

T0 = datetime(2026, 3, 10, 12, 0, 0)


class FrozenClock:
    """Clock that only moves when told to"""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


# =======================
# CORE FIXTURES
# =======================

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def bus() -> InMemorySignalBus:
    return InMemorySignalBus(queue_size=50)


@pytest.fixture
def settings() -> Settings:
    return Settings(materialize_approved_records=False, public_base_url="https://petbook.test")


@pytest.fixture
def people(store):
    """Guardian, professional, a non-professional user and their pet"""
    guardian = Profile(full_name="Ana Souza", account_type="guardian")
    professional = Profile(
        full_name="Dr. Carlos Lima",
        account_type="professional",
        professional_crmv="12345",
        professional_crmv_state="SP",
    )
    other_professional = Profile(full_name="Dra. Beatriz Rocha", account_type="professional")
    outsider = Profile(full_name="Bruno Alves", account_type="guardian")
    pet = Pet(guardian_id=guardian.id, name="Thor", species="dog")
    store.seed(guardian, professional, other_professional, outsider, pet)
    return SimpleNamespace(
        guardian=guardian,
        professional=professional,
        other_professional=other_professional,
        outsider=outsider,
        pet=pet,
    )


@pytest.fixture
def make(store, bus, settings, clock):
    def _make(cls, **kwargs):
        return cls(InMemoryRepository(store), bus, settings, clock, **kwargs)

    return _make


# =======================
# COMPONENT FIXTURES
# =======================

@pytest.fixture
def issuer(make) -> TokenIssuer:
    return make(TokenIssuer)


@pytest.fixture
def requests(make) -> AccessRequestManager:
    return make(AccessRequestManager)


@pytest.fixture
def approval(make) -> ApprovalAuthority:
    return make(ApprovalAuthority)


@pytest.fixture
def grants(make) -> GrantStore:
    return make(GrantStore)


@pytest.fixture
def emergency(make) -> EmergencyOverride:
    return make(EmergencyOverride)


@pytest.fixture
def co_authorship(make) -> CoAuthorship:
    return make(CoAuthorship)


@pytest.fixture
def inbox(make) -> NotificationInbox:
    return make(NotificationInbox)


@pytest.fixture
async def pending_request(issuer, requests, people):
    """A pending QR access request from the professional for the pet"""
    token = await issuer.issue_token(people.pet.id)
    return await requests.request_access(people.pet.id, people.professional.id, token.token)
