"""Health routes - System health and readiness checks."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from permitgrid.api.deps import get_aggregator
from permitgrid.schemas.api import HealthResponse
from permitgrid.services.aggregation_service import PermitAggregator

router = APIRouter(prefix="/health", tags=["health"])


@router.get("", response_model=HealthResponse)
def health(aggregator: PermitAggregator = Depends(get_aggregator)):
    """
    Health check endpoint for load balancer and Docker health checks.

    Upstream municipal endpoints are not probed here; their
    state is reported per query.
    """
    return HealthResponse(
        status="healthy",
        environment=aggregator.settings.ENV,
        cities_configured=len(aggregator.registry),
        cache=aggregator.cache.stats() if aggregator.cache is not None else None,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready")
def readiness(response: Response, aggregator: PermitAggregator = Depends(get_aggregator)):
    """
    Readiness probe - ready once at least one city is configured.

    Returns 200 if ready, 503 if the registry is empty.
    """
    if len(aggregator.registry) == 0:
        response.status_code = 503
        return {"status": "not_ready", "error": "no cities configured", "timestamp": datetime.now(timezone.utc).isoformat()}
    return {"status": "ready", "timestamp": datetime.now(timezone.utc).isoformat()}
