"""
auth/credentials.py -- Secret verification and login authentication.

Two schemes, chosen by CREDENTIAL_SCHEME:

  plaintext: the stored secret is the password itself and is compared as-is
      (hmac.compare_digest, so at least the comparison is constant-time).
      This is the historical behaviour of the service and is a known gap.

  bcrypt: prepare_records() hashes every seed secret once at startup and
      verify_secret() checks with bcrypt. authenticate_user() runs bcrypt
      against a dummy hash when the username is unknown so response time does
      not reveal whether a username exists.

Layer rule: no imports from api/ or metrics/.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Literal

import bcrypt

from auth.errors import BadRequest, InvalidCredentials
from auth.models import UserRecord
from auth.store import CredentialStore

logger = logging.getLogger("devops_api.auth")

Scheme = Literal["plaintext", "bcrypt"]

# ---------------------------------------------------------------------------
# Hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_secret(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext secret."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_secret(plain: str, stored: str, scheme: Scheme) -> bool:
    """Return True if plain matches the stored secret under the given scheme."""
    if scheme == "bcrypt":
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), stored.encode("utf-8"))
        except ValueError:
            # stored value is not a bcrypt hash
            return False
    return hmac.compare_digest(plain.encode("utf-8"), stored.encode("utf-8"))


def prepare_records(records: Iterable[UserRecord], scheme: Scheme) -> list[UserRecord]:
    """Convert seed records into the form the store should hold for scheme."""
    if scheme == "bcrypt":
        return [replace(r, secret=hash_secret(r.secret)) for r in records]
    return list(records)


_DUMMY_HASH: str | None = None


def _dummy_hash() -> str:
    # Computed lazily so plaintext deployments never pay for a bcrypt round.
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = hash_secret("devops_api_timing_dummy")
    return _DUMMY_HASH


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


def authenticate_user(
    store: CredentialStore,
    username: str | None,
    password: str | None,
    scheme: Scheme = "plaintext",
) -> UserRecord:
    """Resolve a login attempt to a UserRecord.

    Raises BadRequest if either field is missing or empty, InvalidCredentials
    if no record matches with the exact secret. The same InvalidCredentials
    is raised for unknown username and wrong password.
    """
    if not username or not password:
        raise BadRequest()

    user = store.find_by_username(username)
    if user is None:
        if scheme == "bcrypt":
            verify_secret(password, _dummy_hash(), scheme)
        logger.info("Login failed: unknown username")
        raise InvalidCredentials()
    if not verify_secret(password, user.secret, scheme):
        logger.info("Login failed: bad secret for user_id=%d", user.id)
        raise InvalidCredentials()
    return user
