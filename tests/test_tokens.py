"""Unit tests for auth/tokens.py -- the base64 and signed token codecs.

Covers:
- encode/decode reproduces id, username and role for every seeded user
- exp is issue time + ttl in milliseconds
- the base64 format is plain base64(JSON) with the historical field names
- arbitrary and structurally wrong strings raise TokenDecodeError(MALFORMED)
- signed tokens reject tampering and a different key
- decode does not check expiry
"""

import base64
import json

import pytest

from auth.errors import DecodeErrorReason, TokenDecodeError
from auth.models import DEFAULT_USERS, Role, UserRecord
from auth.tokens import Base64TokenCodec, SignedTokenCodec, build_token_codec
from conftest import FakeClock

_KEY = "k" * 32
_OTHER_KEY = "o" * 32


def _b64(obj) -> str:
    return base64.b64encode(json.dumps(obj).encode()).decode()


_DEEP = "[" * 100_000
_DEEP_B64 = base64.b64encode(_DEEP.encode()).decode()
_DEEP_JWT_HEADER = base64.urlsafe_b64encode(_DEEP.encode()).decode().rstrip("=") + ".e30.c2ln"


@pytest.fixture(params=["base64", "signed"])
def codec(request, clock):
    if request.param == "signed":
        return SignedTokenCodec(_KEY, clock=clock)
    return Base64TokenCodec(clock=clock)


# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("user", DEFAULT_USERS, ids=lambda u: u.username)
def test_decode_reproduces_identity_fields(codec, user: UserRecord) -> None:
    session = codec.decode(codec.encode(user, 3_600_000))
    assert (session.user_id, session.username, session.role) == (user.id, user.username, user.role)


def test_expiry_is_clock_plus_ttl(codec, clock: FakeClock) -> None:
    session = codec.decode(codec.encode(DEFAULT_USERS[0], 5_000))
    assert session.expires_at_ms == clock.now + 5_000


def test_decode_does_not_check_expiry(codec, clock: FakeClock) -> None:
    token = codec.encode(DEFAULT_USERS[0], 1)
    clock.advance(10_000)
    assert codec.decode(token).expires_at_ms < clock.now


@pytest.mark.parametrize(
    "garbage",
    ["", "abc", "not a token", "!!!!", "🙂", "a.b.c", "eyJ", _DEEP_B64, _DEEP_JWT_HEADER],
    ids=["empty", "abc", "spaces", "bangs", "emoji", "dots", "eyJ", "deep-b64", "deep-jwt-header"],
)
def test_garbage_is_malformed(codec, garbage: str) -> None:
    with pytest.raises(TokenDecodeError) as exc_info:
        codec.decode(garbage)
    assert exc_info.value.reason is DecodeErrorReason.MALFORMED


# ---------------------------------------------------------------------------
# Base64 codec
# ---------------------------------------------------------------------------


class TestBase64Codec:
    def test_wire_format(self, clock: FakeClock) -> None:
        token = Base64TokenCodec(clock=clock).encode(DEFAULT_USERS[0], 1000)
        assert json.loads(base64.b64decode(token)) == {
            "id": 1,
            "username": "admin",
            "role": "admin",
            "exp": clock.now + 1000,
        }

    def test_decodes_externally_built_token(self) -> None:
        token = _b64({"id": 7, "username": "ci", "role": "user", "exp": 123})
        session = Base64TokenCodec().decode(token)
        assert session.user_id == 7
        assert session.role is Role.user
        assert session.expires_at_ms == 123

    @pytest.mark.parametrize(
        "payload",
        [
            [1, 2, 3],
            "string",
            42,
            None,
            {"username": "admin", "role": "admin", "exp": 1},
            {"id": "1", "username": "admin", "role": "admin", "exp": 1},
            {"id": True, "username": "admin", "role": "admin", "exp": 1},
            {"id": 1, "username": "", "role": "admin", "exp": 1},
            {"id": 1, "username": "admin", "role": "root", "exp": 1},
            {"id": 1, "username": "admin", "role": "admin"},
            {"id": 1, "username": "admin", "role": "admin", "exp": "soon"},
            {"id": 1, "username": "admin", "role": "admin", "exp": 1.5},
        ],
    )
    def test_wrong_structure_is_malformed(self, payload) -> None:
        with pytest.raises(TokenDecodeError):
            Base64TokenCodec().decode(_b64(payload))

    def test_integral_float_exp_is_accepted(self) -> None:
        token = _b64({"id": 1, "username": "admin", "role": "admin", "exp": 1000.0})
        assert Base64TokenCodec().decode(token).expires_at_ms == 1000

    def test_only_standard_padded_base64_is_accepted(self) -> None:
        # any aligned "???" encodes as "Pz8/", so the standard form contains "/"
        raw = json.dumps({"id": 1, "username": "?" * 9, "role": "user", "exp": 1}).encode()
        standard = base64.b64encode(raw).decode()
        assert "/" in standard
        assert Base64TokenCodec().decode(standard).username == "?" * 9

        urlsafe = base64.urlsafe_b64encode(raw).decode()
        # trailing JSON whitespace makes the length need padding
        needs_padding = raw if len(raw) % 3 else raw + b" "
        unpadded = base64.b64encode(needs_padding).decode().rstrip("=")
        for token in (urlsafe, unpadded):
            with pytest.raises(TokenDecodeError):
                Base64TokenCodec().decode(token)

    def test_non_utf8_payload_is_malformed(self) -> None:
        with pytest.raises(TokenDecodeError):
            Base64TokenCodec().decode(base64.b64encode(b"\xff\xfe\xfd").decode())


# ---------------------------------------------------------------------------
# Signed codec
# ---------------------------------------------------------------------------


class TestSignedCodec:
    def test_base64_token_is_rejected(self, clock: FakeClock) -> None:
        token = Base64TokenCodec(clock=clock).encode(DEFAULT_USERS[0], 1000)
        with pytest.raises(TokenDecodeError):
            SignedTokenCodec(_KEY, clock=clock).decode(token)

    def test_other_key_is_rejected(self, clock: FakeClock) -> None:
        token = SignedTokenCodec(_OTHER_KEY, clock=clock).encode(DEFAULT_USERS[1], 1000)
        with pytest.raises(TokenDecodeError):
            SignedTokenCodec(_KEY, clock=clock).decode(token)

    def test_tampered_payload_is_rejected(self, clock: FakeClock) -> None:
        codec = SignedTokenCodec(_KEY, clock=clock)
        header, _payload, signature = codec.encode(DEFAULT_USERS[1], 1000).split(".")
        forged_claims = {"sub": "user", "user_id": 2, "role": "admin", "exp": 1, "exp_ms": 1000}
        forged_payload = base64.urlsafe_b64encode(json.dumps(forged_claims).encode()).decode().rstrip("=")
        with pytest.raises(TokenDecodeError):
            codec.decode(f"{header}.{forged_payload}.{signature}")

    def test_requires_key(self) -> None:
        with pytest.raises(ValueError):
            SignedTokenCodec("")


def test_build_token_codec() -> None:
    assert isinstance(build_token_codec("base64"), Base64TokenCodec)
    assert isinstance(build_token_codec("signed", _KEY), SignedTokenCodec)
    with pytest.raises(ValueError):
        build_token_codec("rot13")
