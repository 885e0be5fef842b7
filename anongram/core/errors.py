"""
Error taxonomy shared by services, routers and the realtime channel.

Every error carries a stable ``code`` string (what clients match on) and the
HTTP status the request boundary answers with.
"""

from __future__ import annotations


class AnongramError(Exception):
    """Base class for expected, client-facing failures."""

    code = "InternalError"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AnongramError):
    code = "ValidationError"
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AnongramError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class UserNotFoundError(NotFoundError):
    code = "UserNotFound"
    default_message = "User not found"


class ProfessionNotFoundError(NotFoundError):
    code = "NotFound"
    default_message = "Profession not found"


class MessageNotFoundError(NotFoundError):
    default_message = "Message not found"


class DuplicateIdentityError(AnongramError):
    code = "DuplicateIdentity"
    status_code = 400
    default_message = "Email or display name already registered"


class CodeNotFoundError(AnongramError):
    code = "CodeNotFound"
    status_code = 400
    default_message = "No pending code for this email"


class CodeExpiredError(AnongramError):
    code = "CodeExpired"
    status_code = 400
    default_message = "Code expired"


class CodeMismatchError(AnongramError):
    code = "CodeMismatch"
    status_code = 400
    default_message = "Invalid code"


class InsufficientLevelError(AnongramError):
    code = "InsufficientLevel"
    status_code = 400
    default_message = "Level too low for this profession"


class SessionInvalidError(AnongramError):
    code = "SessionInvalid"
    status_code = 401
    default_message = "Session missing or expired"


class DeliveryFailedError(AnongramError):
    code = "DeliveryFailed"
    status_code = 500
    default_message = "Could not send the verification code"
