"""
auth/tokens.py -- Session token codecs.

Both codecs implement the same TokenCodec interface so callers (login route,
session validator, CLI) are unaffected by which one is configured:

  Base64TokenCodec: base64(JSON {"id", "username", "role", "exp"}), exp in
      epoch milliseconds. This is the wire format the service has always
      issued. It carries NO integrity protection: anyone can mint a token for
      any role. Kept as the default for compatibility; never treat it as secure.

  SignedTokenCodec: HS256 JWT (python-jose) signed with SECRET_KEY. Carries
      sub=username, user_id, role, exp (seconds, per RFC 7519) and exp_ms.

decode() never checks expiry -- that is auth/session.py's job, so both codecs
report expired tokens the same way. decode() raises TokenDecodeError and
nothing else.

Layer rule: no imports from api/ or metrics/.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from jose import JWTError, jwt

from auth.errors import DecodeErrorReason, TokenDecodeError
from auth.models import Role, SessionToken, UserRecord

logger = logging.getLogger("devops_api.auth")

Clock = Callable[[], int]

_ALGORITHM = "HS256"


def now_ms() -> int:
    return int(time.time() * 1000)


class TokenCodec(Protocol):
    def encode(self, user: UserRecord, ttl_ms: int) -> str: ...

    def decode(self, token: str) -> SessionToken: ...


# ---------------------------------------------------------------------------
# Payload validation (shared)
# ---------------------------------------------------------------------------


def _is_int(value: Any) -> bool:
    # bool is an int subclass; a token saying "id": true is malformed
    return isinstance(value, int) and not isinstance(value, bool)


def _session_from_claims(user_id: Any, username: Any, role: Any, exp_ms: Any) -> SessionToken:
    if not _is_int(user_id):
        raise TokenDecodeError(DecodeErrorReason.MALFORMED, "id must be an integer")
    if not isinstance(username, str) or not username:
        raise TokenDecodeError(DecodeErrorReason.MALFORMED, "username must be a non-empty string")
    if isinstance(exp_ms, float) and exp_ms.is_integer():
        exp_ms = int(exp_ms)
    if not _is_int(exp_ms):
        raise TokenDecodeError(DecodeErrorReason.MALFORMED, "exp must be an integer")
    try:
        parsed_role = Role(role)
    except ValueError:
        raise TokenDecodeError(DecodeErrorReason.MALFORMED, "unknown role") from None
    return SessionToken(user_id=user_id, username=username, role=parsed_role, expires_at_ms=exp_ms)


# ---------------------------------------------------------------------------
# Base64 JSON (unsigned)
# ---------------------------------------------------------------------------


class Base64TokenCodec:
    """Reversible, unsigned token format.

    Usage:
        codec = Base64TokenCodec()
        token = codec.encode(user, ttl_ms=3_600_000)
        session = codec.decode(token)
    """

    def __init__(self, clock: Clock = now_ms) -> None:
        self._clock = clock

    def encode(self, user: UserRecord, ttl_ms: int) -> str:
        payload = {
            "id": user.id,
            "username": user.username,
            "role": user.role.value,
            "exp": self._clock() + ttl_ms,
        }
        raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def decode(self, token: str) -> SessionToken:
        try:
            raw = base64.b64decode(token, validate=True)
            payload = json.loads(raw.decode("utf-8"))
        except (binascii.Error, ValueError, RecursionError) as exc:
            # ValueError covers UnicodeDecodeError and JSONDecodeError;
            # RecursionError is json.loads on deeply nested arrays/objects
            raise TokenDecodeError(DecodeErrorReason.MALFORMED, str(exc)) from None
        if not isinstance(payload, dict):
            raise TokenDecodeError(DecodeErrorReason.MALFORMED, "payload is not an object")
        return _session_from_claims(
            payload.get("id"),
            payload.get("username"),
            payload.get("role"),
            payload.get("exp"),
        )


# ---------------------------------------------------------------------------
# Signed JWT
# ---------------------------------------------------------------------------


class SignedTokenCodec:
    """HS256 JWT codec. Same interface as Base64TokenCodec, tamper-evident."""

    def __init__(self, secret_key: str, clock: Clock = now_ms) -> None:
        if not secret_key:
            raise ValueError("SignedTokenCodec requires a non-empty secret key")
        self._secret_key = secret_key
        self._clock = clock

    def encode(self, user: UserRecord, ttl_ms: int) -> str:
        exp_ms = self._clock() + ttl_ms
        payload = {
            "sub": user.username,
            "user_id": user.id,
            "role": user.role.value,
            "exp": exp_ms // 1000,
            "exp_ms": exp_ms,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def decode(self, token: str) -> SessionToken:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise TokenDecodeError(DecodeErrorReason.MALFORMED, str(exc)) from None
        except RecursionError:
            # jose json-parses the header and claims without a depth limit
            raise TokenDecodeError(DecodeErrorReason.MALFORMED, "token nesting too deep") from None
        return _session_from_claims(
            payload.get("user_id"),
            payload.get("sub"),
            payload.get("role"),
            payload.get("exp_ms"),
        )


def build_token_codec(kind: str, secret_key: str = "", clock: Clock = now_ms) -> TokenCodec:
    """Return the codec for the configured TOKEN_CODEC."""
    if kind == "signed":
        return SignedTokenCodec(secret_key, clock=clock)
    if kind == "base64":
        logger.warning("Issuing unsigned base64 tokens (TOKEN_CODEC=base64). Tokens can be forged by any client.")
        return Base64TokenCodec(clock=clock)
    raise ValueError(f"Unknown token codec: {kind!r}")
