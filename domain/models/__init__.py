"""Domain models for the pet health access service"""
from .profile import Profile
from .pet import Pet
from .access_token import HealthAccessToken
from .access_request import HealthAccessRequest
from .grant import HealthAccessGrant
from .health_record import HealthRecord, HealthRecordPayload
from .pending_health_record import PendingHealthRecord
from .notification import Notification
from .audit_log import AuditLog
from .emergency_log import EmergencyLog

__all__ = [
    "Profile",
    "Pet",
    "HealthAccessToken",
    "HealthAccessRequest",
    "HealthAccessGrant",
    "HealthRecord",
    "HealthRecordPayload",
    "PendingHealthRecord",
    "Notification",
    "AuditLog",
    "EmergencyLog",
]
