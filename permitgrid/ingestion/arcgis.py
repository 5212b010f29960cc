"""ArcGIS FeatureServer/MapServer layer query connector."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from permitgrid.core.errors import ConfigurationError
from .base import BaseConnector
from .cities import arcgis_url_issues

DEFAULT_ADDRESS_FIELDS = (
    "ADDRESS",
    "SITE_ADDRESS",
    "CIVIC_ADDRESS",
    "STREET_NAME",
    "STREET_TYPE",
    "ROAD_NAME",
)

MIN_QUERY_LENGTH = 3


def build_where(query: str, fields: Iterable[str] = DEFAULT_ADDRESS_FIELDS) -> str:
    """Case-insensitive LIKE across address columns; short queries fetch broadly."""
    text = (query or "").strip()
    if len(text) < MIN_QUERY_LENGTH:
        return "1=1"
    escaped = text.replace("'", "''")
    return " OR ".join(f"UPPER({field}) LIKE UPPER('%{escaped}%')" for field in fields)


def build_query_params(
    where: str,
    *,
    record_count: int = 100,
    order_by: Optional[str] = None,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {
        "where": where or "1=1",
        "outFields": "*",
        "returnGeometry": "true",
        "outSR": "4326",
        "resultRecordCount": str(record_count),
        "f": "json",
    }
    if order_by:
        params["orderByFields"] = order_by
    return params


class ArcGISConnector(BaseConnector):
    """Attribute filter via ``where``; rows arrive as ``features[].attributes``."""

    kind = "arcgis"

    def build_request(self, query: str) -> Tuple[str, Dict[str, Any]]:
        endpoint = self.city.endpoint
        url = endpoint.url.split("?")[0]
        issues = arcgis_url_issues(url)
        if issues:
            raise ConfigurationError(f"{url}: {'; '.join(issues)}", city=self.name)

        fields = endpoint.address_fields or DEFAULT_ADDRESS_FIELDS
        params = build_query_params(
            build_where(query, fields),
            record_count=self.settings.RESULT_RECORD_COUNT,
            order_by=endpoint.order_by,
        )
        return url, params
