"""API v1 routers"""
from . import (
    health_access,
    tokens,
    grants,
    pending_records,
    emergency,
    notifications,
    realtime,
)

__all__ = [
    "health_access",
    "tokens",
    "grants",
    "pending_records",
    "emergency",
    "notifications",
    "realtime",
]
