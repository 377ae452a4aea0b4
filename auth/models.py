"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, codecs and
the validator do the work; routes map these onto the API models.

Layer rule: no imports from api/, core/, or metrics/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    admin = "admin"
    user = "user"


@dataclass(frozen=True)
class UserRecord:
    """One entry in the credential store.

    secret is whatever the configured credential scheme stores: the raw
    password for the plaintext scheme, a bcrypt hash for the bcrypt scheme.
    It must never leave the auth package -- see public_view().
    """

    id: int
    username: str
    secret: str
    role: Role

    def public_view(self) -> dict:
        """Sanitized representation (no secret) used by profile/admin responses."""
        return {"id": self.id, "username": self.username, "role": self.role.value}


@dataclass(frozen=True)
class SessionToken:
    """Decoded token payload. Stateless: nothing about it is stored server-side."""

    user_id: int
    username: str
    role: Role
    expires_at_ms: int


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Result of a successful session validation. Lives for one request."""

    user_id: int
    username: str
    role: Role
    expires_at_ms: int

    @classmethod
    def from_token(cls, token: SessionToken) -> AuthenticatedIdentity:
        return cls(
            user_id=token.user_id,
            username=token.username,
            role=token.role,
            expires_at_ms=token.expires_at_ms,
        )


# Seed set loaded at startup. Plaintext on purpose: this is the toy credential
# list the service has always shipped with. CREDENTIAL_SCHEME=bcrypt hashes
# these before they reach a store.
DEFAULT_USERS: tuple[UserRecord, ...] = (
    UserRecord(id=1, username="admin", secret="admin123", role=Role.admin),
    UserRecord(id=2, username="user", secret="user123", role=Role.user),
)
