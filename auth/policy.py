"""auth/policy.py -- Role-based access policy. Exact match, no hierarchy."""

from __future__ import annotations

from enum import Enum

from auth.errors import Forbidden
from auth.models import AuthenticatedIdentity, Role


class AccessDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(identity: AuthenticatedIdentity, required_role: Role) -> AccessDecision:
    if identity.role == required_role:
        return AccessDecision.ALLOW
    return AccessDecision.DENY


def require_role(identity: AuthenticatedIdentity, required_role: Role) -> AuthenticatedIdentity:
    """Return identity unchanged if allowed, else raise Forbidden."""
    if authorize(identity, required_role) is AccessDecision.DENY:
        raise Forbidden(f"{required_role.value.capitalize()} access required")
    return identity
