"""
api/routes/status.py -- Service status and project information.

Both routes are public and unthrottled, like /health.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from api.models import InfoResponse, StatusResponse

router = APIRouter()

_FEATURES = [
    "Health checks",
    "Token authentication",
    "Role-based access control",
    "Request metrics",
    "Rate limiting",
]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/status", response_model=StatusResponse)
async def status(request: Request) -> StatusResponse:
    return StatusResponse(
        message="DevOps API is running",
        environment=request.app.state.settings.environment,
        timestamp=utc_timestamp(),
    )


@router.get("/info", response_model=InfoResponse)
async def info(request: Request) -> InfoResponse:
    return InfoResponse(
        project="DevOps API",
        version=request.app.state.settings.app_version,
        description="Health, authentication and metrics endpoints for DevOps pipelines.",
        features=_FEATURES,
    )
