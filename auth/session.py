"""
auth/session.py -- Session validation.

Two checks, in order:
  1. token present and decodable   -> else Unauthenticated(MISSING_TOKEN | MALFORMED)
  2. expires_at_ms >= now          -> else Unauthenticated(EXPIRED)

No store lookup happens here. The decoded payload is trusted entirely, so a
crafted token for a user that does not exist is accepted as long as it
decodes and is unexpired. With the base64 codec that means anyone can forge
an identity; use TOKEN_CODEC=signed to close that gap.

Layer rule: no imports from api/ or metrics/.
"""

from __future__ import annotations

from auth.errors import TokenDecodeError, Unauthenticated, UnauthenticatedReason
from auth.models import AuthenticatedIdentity
from auth.tokens import Clock, TokenCodec, now_ms


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token part of an "Authorization: Bearer <token>" header.

    Takes the second space-separated field, whatever the scheme word is.
    Returns None when the header is absent or has no second field.
    """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) < 2 or not parts[1]:
        return None
    return parts[1]


class SessionValidator:
    def __init__(self, codec: TokenCodec, clock: Clock = now_ms) -> None:
        self._codec = codec
        self._clock = clock

    def validate(self, token: str | None) -> AuthenticatedIdentity:
        if not token:
            raise Unauthenticated(UnauthenticatedReason.MISSING_TOKEN)
        try:
            session = self._codec.decode(token)
        except TokenDecodeError:
            raise Unauthenticated(UnauthenticatedReason.MALFORMED) from None
        if session.expires_at_ms < self._clock():
            raise Unauthenticated(UnauthenticatedReason.EXPIRED)
        return AuthenticatedIdentity.from_token(session)
