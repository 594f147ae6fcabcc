"""Domain errors for the health access handshake.

All of them are terminal for the caller: there is no retry policy here. The
caller obtains a new token, re-requests access, or gives up.
"""


class AccessControlError(Exception):
    status_code = 400
    code = "access_control_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = str(self)


class TokenInvalid(AccessControlError):
    """Invalid token"""
    code = "token_invalid"


class TokenExpired(AccessControlError):
    """Token expired"""
    code = "token_expired"


class RequestNotFound(AccessControlError):
    """Access request not found"""
    status_code = 404
    code = "request_not_found"


class PetNotFound(AccessControlError):
    """Pet not found"""
    status_code = 404
    code = "pet_not_found"


class GrantNotFound(AccessControlError):
    """Access grant not found"""
    status_code = 404
    code = "grant_not_found"


class PendingRecordNotFound(AccessControlError):
    """Pending health record not found"""
    status_code = 404
    code = "pending_record_not_found"


class NotAuthorized(AccessControlError):
    """Not authorized"""
    status_code = 403
    code = "not_authorized"


class InvalidTransition(AccessControlError):
    """Transition not allowed from the current status"""
    status_code = 409
    code = "invalid_transition"


class NotificationNotFound(AccessControlError):
    """Notification not found"""
    status_code = 404
    code = "notification_not_found"
