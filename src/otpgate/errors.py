"""Error taxonomy for the MFA core.

Messages are fixed strings so that no secret, recovery code or hash can leak
into an error payload. ``http_status`` is a hint for whatever transport layer
wraps the service.
"""

from __future__ import annotations


class MfaError(Exception):
    """Base class for every failure raised by otpgate."""

    http_status = 500
    default_message = "MFA operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MfaError, ValueError):
    http_status = 400
    default_message = "Malformed input"


class NotFound(MfaError):
    http_status = 404
    default_message = "Account not found"


class NotProvisioned(MfaError):
    http_status = 409
    default_message = "MFA setup required"


class AlreadyActive(MfaError):
    http_status = 409
    default_message = "MFA already enabled"


class NotActive(MfaError):
    http_status = 409
    default_message = "MFA is not enabled"


class InvalidCode(MfaError):
    """Raised for every failed proof, whichever factor was supplied."""

    http_status = 400
    default_message = "Invalid verification code"

    def __init__(self) -> None:
        super().__init__()


class PolicyViolation(MfaError):
    http_status = 403
    default_message = "Operation not permitted by security policy"


class Conflict(MfaError):
    http_status = 409
    default_message = "Account was modified concurrently"
