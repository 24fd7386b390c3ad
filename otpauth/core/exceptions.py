"""Domain errors raised by the OTP and account services.

Every error carries the user-facing message and the HTTP status the API layer
should answer with. Business-rule and validation failures are client errors;
`StoreError` is the only server-side failure and its message stays generic.
"""

from enum import Enum


class AuthServiceError(Exception):
    """Base class for errors translated into `{success: false, message}` bodies."""

    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthServiceError):
    """Missing or malformed input."""

    default_message = "Invalid request."


class NotFoundError(AuthServiceError):
    """No OTP record or account exists for the email."""

    default_message = "Not found."


class ExpiredError(AuthServiceError):
    """The OTP record is past its expiry."""

    default_message = "OTP expired."


class MismatchError(AuthServiceError):
    """Submitted code or password does not match the stored value."""

    default_message = "Invalid OTP."


class DuplicateAccountError(AuthServiceError):
    default_message = "User already exists."


class OtpFailureReason(str, Enum):
    """Why a proof token was rejected at registration (logged, never shown)."""

    NO_RECORD = "no_record"
    NOT_VERIFIED = "not_verified"
    TOKEN_MISMATCH = "token_mismatch"


class OtpNotVerifiedError(AuthServiceError):
    """Registration attempted without a current, verified proof token."""

    default_message = "OTP verification failed."

    def __init__(self, reason: OtpFailureReason, message: str | None = None):
        self.reason = reason
        super().__init__(message)


class StoreError(AuthServiceError):
    """Persistence-layer failure; details are logged, never returned."""

    status_code = 500
    default_message = "Server error. Please try again later."
