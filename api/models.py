"""
API request and response models for the DevOps API REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
metrics/aggregator.py, which own the internal representation. Route handlers
map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from auth.models import AuthenticatedIdentity, UserRecord
from metrics.aggregator import MetricsSnapshot

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login.

    Both fields are optional at the schema level so a missing field reaches
    the route and is reported as bad_request (400), not as a 422 validation
    error.
    """

    username: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Auth response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Sanitized user -- never includes the secret."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: str

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserSummary":
        return cls(**user.public_view())


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Login successful"
    token: str
    user: UserSummary


class ProfileUser(BaseModel):
    """The caller's own identity, as carried by the token."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    role: str
    exp: int

    @classmethod
    def from_identity(cls, identity: AuthenticatedIdentity) -> "ProfileUser":
        return cls(
            id=identity.user_id,
            username=identity.username,
            role=identity.role.value,
            exp=identity.expires_at_ms,
        )


class ProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Profile data"
    user: ProfileUser


class AdminResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "Admin dashboard data"
    users: list[UserSummary]


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


class MetricsResponse(BaseModel):
    """Response for GET /api/metrics."""

    model_config = ConfigDict(frozen=True)

    requests_total: int
    errors_total: int
    uptime_seconds: int
    memory_usage: dict[str, int]
    cpu_usage: dict[str, int]
    timestamp: str

    @classmethod
    def from_snapshot(cls, snap: MetricsSnapshot) -> "MetricsResponse":
        return cls(
            requests_total=snap.requests_total,
            errors_total=snap.errors_total,
            uptime_seconds=snap.uptime_seconds,
            memory_usage=snap.memory_usage,
            cpu_usage=snap.cpu_usage,
            timestamp=snap.timestamp,
        )


# ---------------------------------------------------------------------------
# Health / status / info
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    timestamp: str
    version: str
    environment: str


class StatusResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    environment: str
    timestamp: str


class InfoResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    project: str
    version: str
    description: str
    features: list[str]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class NotFoundResponse(BaseModel):
    """Body of the 404 for unknown routes."""

    model_config = ConfigDict(frozen=True)

    error: str = "Route not found"
    path: str
