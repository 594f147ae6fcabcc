"""FastAPI dependency wiring for the access-control components.

One repository (one DB session) per HTTP request, shared by every component
the endpoint pulls in. Tests override `get_repository`, `get_clock` and
`get_settings`.
"""
from typing import Callable, Optional, Type, TypeVar
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from config import Settings, settings as app_settings
from domain.clock import Clock, utcnow
from domain.services import (
    AccessRequestManager,
    AccessService,
    ApprovalAuthority,
    CoAuthorship,
    EmergencyOverride,
    GrantStore,
    NotificationInbox,
    TokenIssuer,
)
from infrastructure.database import get_session
from infrastructure.database.repository import Repository, SqlModelRepository
from infrastructure.realtime.bus import SignalBus

ServiceT = TypeVar("ServiceT", bound=AccessService)


def get_repository(session: AsyncSession = Depends(get_session)) -> Repository:
    return SqlModelRepository(session)


def get_signal_bus(request: Request) -> SignalBus:
    return request.app.state.signal_bus


def get_settings() -> Settings:
    return app_settings


def get_clock() -> Clock:
    return utcnow


def get_user_id(
    x_user_id: Optional[UUID] = Header(None, description="Acting user (guardian or professional)"),
) -> Optional[UUID]:
    return x_user_id


def _service(cls: Type[ServiceT]) -> Callable[..., ServiceT]:
    def factory(
        repo: Repository = Depends(get_repository),
        bus: SignalBus = Depends(get_signal_bus),
        settings: Settings = Depends(get_settings),
        clock: Clock = Depends(get_clock),
    ) -> ServiceT:
        return cls(repo, bus, settings, clock)

    factory.__name__ = f"get_{cls.__name__}"
    return factory


get_token_issuer = _service(TokenIssuer)
get_access_request_manager = _service(AccessRequestManager)
get_approval_authority = _service(ApprovalAuthority)
get_grant_store = _service(GrantStore)
get_emergency_override = _service(EmergencyOverride)
get_co_authorship = _service(CoAuthorship)
get_notification_inbox = _service(NotificationInbox)
