"""
api/routes/metrics.py -- Read and reset the request counters.

The counting itself happens in the request middleware in api/main.py, once
per inbound request before routing. These routes only read or reset the
MetricsAggregator held on app.state.
"""

from fastapi import APIRouter, Request

from api.models import MessageResponse, MetricsResponse
from metrics.aggregator import MetricsAggregator

# Auth policy:
# - GET  /api/metrics:        public -- scraped by monitoring
# - POST /api/metrics/reset:  public -- used by test and demo environments
router = APIRouter()


@router.get("/metrics", response_model=MetricsResponse)
def get_metrics(request: Request) -> MetricsResponse:
    metrics: MetricsAggregator = request.app.state.metrics
    return MetricsResponse.from_snapshot(metrics.snapshot())


@router.post("/metrics/reset", response_model=MessageResponse)
def reset_metrics(request: Request) -> MessageResponse:
    """Zero the counters and restart the uptime clock."""
    metrics: MetricsAggregator = request.app.state.metrics
    metrics.reset()
    return MessageResponse(message="Metrics reset successfully")
