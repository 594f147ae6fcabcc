"""Access-control components"""
from .base import AccessService
from .token_issuer import TokenIssuer
from .access_requests import AccessRequestManager
from .approval import ApprovalAuthority
from .grants import GrantStore
from .emergency import EmergencyAlertData, EmergencyOverride
from .co_authorship import CoAuthorship
from .notifications import NotificationInbox

__all__ = [
    "AccessService",
    "TokenIssuer",
    "AccessRequestManager",
    "ApprovalAuthority",
    "GrantStore",
    "EmergencyAlertData",
    "EmergencyOverride",
    "CoAuthorship",
    "NotificationInbox",
]
