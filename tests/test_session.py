"""Unit tests for auth/session.py and auth/policy.py.

Covers:
- bearer extraction from the Authorization header
- validator ordering: missing -> malformed -> expired -> identity
- the expiry boundary (exp == now is still valid)
- access policy over every role pair
"""

import itertools

import pytest

from auth.errors import Forbidden, Unauthenticated, UnauthenticatedReason
from auth.models import DEFAULT_USERS, AuthenticatedIdentity, Role
from auth.policy import AccessDecision, authorize, require_role
from auth.session import SessionValidator, extract_bearer_token
from auth.tokens import Base64TokenCodec
from conftest import FakeClock

# ---------------------------------------------------------------------------
# extract_bearer_token
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc", "abc"),
        ("Bearer abc extra", "abc"),
        ("Token abc", "abc"),
        ("Bearer", None),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected) -> None:
    assert extract_bearer_token(header) == expected


# ---------------------------------------------------------------------------
# SessionValidator
# ---------------------------------------------------------------------------


@pytest.fixture
def codec(clock: FakeClock) -> Base64TokenCodec:
    return Base64TokenCodec(clock=clock)


@pytest.fixture
def validator(codec: Base64TokenCodec, clock: FakeClock) -> SessionValidator:
    return SessionValidator(codec, clock=clock)


def _reason(validator: SessionValidator, token) -> UnauthenticatedReason:
    with pytest.raises(Unauthenticated) as exc_info:
        validator.validate(token)
    return exc_info.value.reason


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(validator: SessionValidator, token) -> None:
    assert _reason(validator, token) is UnauthenticatedReason.MISSING_TOKEN


def test_malformed_token(validator: SessionValidator) -> None:
    assert _reason(validator, "garbage") is UnauthenticatedReason.MALFORMED


def test_valid_token_yields_identity(validator, codec, clock: FakeClock) -> None:
    admin = DEFAULT_USERS[0]
    identity = validator.validate(codec.encode(admin, 1000))
    assert identity == AuthenticatedIdentity(
        user_id=admin.id,
        username=admin.username,
        role=admin.role,
        expires_at_ms=clock.now + 1000,
    )


def test_expiry_boundary(validator, codec, clock: FakeClock) -> None:
    token = codec.encode(DEFAULT_USERS[1], 1000)
    clock.advance(1000)
    assert validator.validate(token).username == "user"
    clock.advance(1)
    assert _reason(validator, token) is UnauthenticatedReason.EXPIRED


def test_expired_error_message(validator, codec, clock: FakeClock) -> None:
    token = codec.encode(DEFAULT_USERS[1], 0)
    clock.advance(1)
    with pytest.raises(Unauthenticated) as exc_info:
        validator.validate(token)
    assert exc_info.value.message == "Token expired"
    assert exc_info.value.detail == "expired"


# ---------------------------------------------------------------------------
# Access policy
# ---------------------------------------------------------------------------


def _identity(role: Role) -> AuthenticatedIdentity:
    return AuthenticatedIdentity(user_id=1, username="x", role=role, expires_at_ms=0)


@pytest.mark.parametrize("have,need", list(itertools.product(Role, Role)))
def test_authorize_is_exact_match(have: Role, need: Role) -> None:
    expected = AccessDecision.ALLOW if have == need else AccessDecision.DENY
    assert authorize(_identity(have), need) is expected


def test_require_role_denies_user_for_admin() -> None:
    with pytest.raises(Forbidden) as exc_info:
        require_role(_identity(Role.user), Role.admin)
    assert exc_info.value.message == "Admin access required"


def test_require_role_returns_identity() -> None:
    identity = _identity(Role.admin)
    assert require_role(identity, Role.admin) is identity


def test_admin_does_not_imply_user() -> None:
    with pytest.raises(Forbidden):
        require_role(_identity(Role.admin), Role.user)
