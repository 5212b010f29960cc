"""Permit routes - aggregate and single-answer queries across municipalities."""

import time
import uuid
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Response

from permitgrid.api.deps import get_aggregator
from permitgrid.core.logging import get_logger
from permitgrid.schemas.api import CitiesResponse, CityOut
from permitgrid.schemas.results import AggregateResult, SmartFetchResponse
from permitgrid.services.aggregation_service import PermitAggregator

router = APIRouter(prefix="/permits", tags=["permits"])
log = get_logger("permit_routes")


def _stamp(response: Response, request_id: str, start: float) -> None:
    response.headers["X-Request-ID"] = request_id
    response.headers["X-API-Latency-Ms"] = str(int((time.perf_counter() - start) * 1000))


@router.get("", response_model=AggregateResult)
async def get_permits(
    response: Response,
    q: str = Query("", max_length=200, description="Free-text query (address, street, project)"),
    city: Optional[List[str]] = Query(None, description="Restrict to these city keys or names"),
    aggregator: PermitAggregator = Depends(get_aggregator),
):
    """
    Aggregate permits from every registered municipality.

    Always answers 200: sources that fail are reported inside ``cities``
    with outcome ``failed`` and lower the ``confidence`` score.
    """
    start = time.perf_counter()
    request_id = str(uuid.uuid4())

    result = await aggregator.fetch_all(q, city)
    log.info(f"request_id={request_id} q={q!r} items={result.total_items} confidence={result.confidence}")

    _stamp(response, request_id, start)
    return result


@router.get("/smart_fetch", response_model=SmartFetchResponse)
async def smart_fetch(
    response: Response,
    q: str = Query("", max_length=200),
    city: Optional[List[str]] = Query(None),
    mode: Literal["any", "address"] = Query("any", description="'address' keeps only address matches"),
    aggregator: PermitAggregator = Depends(get_aggregator),
):
    """Single scored answer with provenance instead of the per-source breakdown."""
    start = time.perf_counter()
    request_id = str(uuid.uuid4())

    result = await aggregator.smart_fetch(q, city, mode=mode)

    _stamp(response, request_id, start)
    return result


@router.get("/cities", response_model=CitiesResponse)
def list_cities(aggregator: PermitAggregator = Depends(get_aggregator)):
    """Registered municipalities with their endpoint family and trust score."""
    cities = [CityOut(**entry) for entry in aggregator.registry.describe()]
    return CitiesResponse(request_id=str(uuid.uuid4()), count=len(cities), data=cities)
