"""API dependencies"""

from fastapi import Request

from permitgrid.services.aggregation_service import PermitAggregator


def get_aggregator(request: Request) -> PermitAggregator:
    """Aggregator built once in the application lifespan."""
    return request.app.state.aggregator
