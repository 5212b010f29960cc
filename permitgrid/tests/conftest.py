"""Shared fixtures: isolated settings, fixed clock, mocked municipal endpoints."""

import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("CACHE_TTL_SECONDS", "0")

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from permitgrid.core.config import Settings
from permitgrid.ingestion.cities import CityConfig, EndpointConfig
from permitgrid.schemas.permit import PermitRecord

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_city(
    key: str,
    *,
    kind: str = "opendata",
    url: Optional[str] = None,
    trust: float = 0.9,
    name: Optional[str] = None,
    **extra: Any,
) -> CityConfig:
    """City entry pointing at a per-city mock host."""
    if url is None:
        host = f"{key.replace('_', '-')}.example.ca"
        url = {
            "opendata": f"https://{host}/api/records/1.0/search/",
            "arcgis": f"https://{host}/arcgis/rest/services/Permits/FeatureServer/0/query",
            "scrape": f"SCRAPE:https://{host}/permits",
        }.get(kind, f"https://{host}/")
    endpoint_kwargs = {k: extra.pop(k) for k in ("dataset", "address_fields", "order_by") if k in extra}
    return CityConfig(
        key=key,
        name=name or key.replace("_", " ").title(),
        endpoint=EndpointConfig(kind=kind, url=url, **endpoint_kwargs),
        trust_score=trust,
        **extra,
    )


def opendata_record(permit_no: str, address: str = "100 Main St", **fields: Any) -> Dict[str, Any]:
    body = {"PERMIT_NO": permit_no, "ADDRESS": address, "PERMIT_TYPE": "Building", "STATUS": "Issued"}
    body.update(fields)
    return {"recordid": f"rec-{permit_no}", "fields": body}


def opendata_body(*records: Dict[str, Any]) -> Dict[str, Any]:
    return {"nhits": len(records), "records": list(records)}


class Upstream:
    """Routes requests by host to canned JSON bodies, status codes or exceptions."""

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], Any]] = {}
        self.requests: List[httpx.Request] = []

    def json(self, host: str, body: Any, status_code: int = 200) -> None:
        self.routes[host] = lambda request: httpx.Response(status_code, json=body)

    def status(self, host: str, status_code: int) -> None:
        self.routes[host] = lambda request: httpx.Response(status_code, text="upstream error")

    def text(self, host: str, text: str) -> None:
        self.routes[host] = lambda request: httpx.Response(200, text=text)

    def fail(self, host: str) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[host] = handler

    def hang(self, host: str, seconds: float = 5.0) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(seconds)
            return httpx.Response(200, json=[])

        self.routes[host] = handler

    def handler(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        route = self.routes.get(request.url.host)
        if route is None:
            return httpx.Response(404, text="no route")
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        LOG_TO_FILE=False,
        CONNECTOR_TIMEOUT_SECONDS=0.5,
        HTTP_TIMEOUT_SECONDS=0.4,
        CONNECTOR_MAX_RETRIES=0,
        RETRY_BACKOFF_SECONDS=0.0,
        CACHE_TTL_SECONDS=0,
        FAILURE_PENALTY=0.5,
    )


def make_record(record_id: str, city: str = "Alpha", address: str = "100 Main St", **fields: Any) -> PermitRecord:
    values: Dict[str, Any] = {
        "id": record_id,
        "address": address,
        "city": city,
        "type": "Building",
        "status": "Issued",
        "source": f"https://{city.lower()}.example.ca/",
        "source_updated_at": FIXED_NOW,
    }
    values.update(fields)
    return PermitRecord(**values)
