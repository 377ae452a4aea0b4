"""
auth/errors.py -- Error taxonomy for the auth core.

Every error carries a stable machine-readable code and a human-readable
message. None of them are retryable (all are deterministic client-input
errors) and none are fatal to the process. The HTTP status for each code is
decided in api/main.py, not here -- auth/ stays transport-independent.

Layer rule: no imports from api/, core/, or metrics/.
"""

from __future__ import annotations

from enum import Enum


class DecodeErrorReason(str, Enum):
    MALFORMED = "malformed"


class UnauthenticatedReason(str, Enum):
    MISSING_TOKEN = "missing_token"
    MALFORMED = "malformed"
    EXPIRED = "expired"


class AuthError(Exception):
    """Base class. Subclasses set code and a default message."""

    code: str = "auth_error"
    default_message: str = "Authentication error."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class BadRequest(AuthError):
    code = "bad_request"
    default_message = "Username and password are required"


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid credentials"


class Unauthenticated(AuthError):
    code = "unauthenticated"

    _MESSAGES = {
        UnauthenticatedReason.MISSING_TOKEN: "Access token required",
        UnauthenticatedReason.MALFORMED: "Invalid token",
        UnauthenticatedReason.EXPIRED: "Token expired",
    }

    def __init__(self, reason: UnauthenticatedReason) -> None:
        self.reason = reason
        super().__init__(self._MESSAGES[reason], detail=reason.value)


class Forbidden(AuthError):
    code = "forbidden"
    default_message = "Admin access required"


class TokenDecodeError(Exception):
    """Raised by a token codec when a string is not a decodable token.

    Codecs raise this and nothing else; the session validator turns it into
    Unauthenticated(MALFORMED).
    """

    def __init__(self, reason: DecodeErrorReason = DecodeErrorReason.MALFORMED, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or reason.value)
