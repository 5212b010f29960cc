"""Static per-city endpoint configuration and trust scores."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

SCRAPE_PREFIX = "SCRAPE:"

_ARCGIS_QUERY_URL = re.compile(r"^https?://.+/(FeatureServer|MapServer)/\d+/query/?(\?|$)", re.IGNORECASE)


def arcgis_url_issues(url: str) -> List[str]:
    """Structural problems with an ArcGIS layer query URL (empty list when fine)."""
    if not _ARCGIS_QUERY_URL.match(url or ""):
        return ["URL must end with /FeatureServer/<layerId>/query or /MapServer/<layerId>/query"]
    return []


class EndpointConfig(BaseModel):
    """Which wire-format family a city speaks, and where."""

    model_config = ConfigDict(frozen=True)

    kind: str
    url: str
    dataset: Optional[str] = None  # opendata portals
    address_fields: List[str] = Field(default_factory=list)  # arcgis WHERE columns
    order_by: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("endpoint url must not be empty")
        return value


class CityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    endpoint: EndpointConfig
    trust_score: float = Field(ge=0.0, le=1.0)
    id_prefix: Optional[str] = None
    fields: Dict[str, List[Union[str, List[str]]]] = Field(default_factory=dict)
    constants: Dict[str, Any] = Field(default_factory=dict)

    @property
    def prefix(self) -> str:
        return self.id_prefix or self.key.upper()[:3]


DEFAULT_CITIES: List[CityConfig] = [
    CityConfig(
        key="vancouver",
        name="Vancouver",
        endpoint=EndpointConfig(
            kind="opendata",
            url="https://opendata.vancouver.ca/api/records/1.0/search/",
            dataset="issued-building-permits",
        ),
        trust_score=0.9,
        id_prefix="VAN",
        fields={"id": ["permitnumber"], "type": ["typeofwork"], "issued_date": ["issuedate"]},
        # dataset only lists issued permits
        constants={"status": "Issued"},
    ),
    CityConfig(
        key="maple_ridge",
        name="Maple Ridge",
        endpoint=EndpointConfig(
            kind="arcgis",
            url="https://geoservices.mapleridge.ca/server/rest/services/DataCatalog/EconomicDevelopment/MapServer/0/query",
            address_fields=["Street", "House"],
        ),
        trust_score=0.85,
        id_prefix="MR",
        fields={
            "id": ["PermitNumber"],
            "address": [["House", "Street"]],
            "type": ["FolderDesc", "FolderType"],
            "status": ["StatusDescription"],
            "submitted_date": ["InDate"],
            "issued_date": ["IssueDate"],
        },
        constants={"type": "Building Permit"},
    ),
    CityConfig(
        key="surrey",
        name="Surrey",
        endpoint=EndpointConfig(
            kind="arcgis",
            url="https://gisservices.surrey.ca/arcgis/rest/services/OpenData/Development_Applications/MapServer/0/query",
        ),
        trust_score=0.85,
        id_prefix="SUR",
        fields={"id": ["application_number"], "type": ["application_type"], "status": ["application_status"]},
    ),
    CityConfig(
        key="coquitlam",
        name="Coquitlam",
        endpoint=EndpointConfig(
            kind="opendata",
            url="https://data.coquitlam.ca/api/records/1.0/search/",
            dataset="building-permits",
        ),
        trust_score=0.8,
        id_prefix="COQ",
        fields={
            "address": ["SITE_ADDRESS"],
            "status": ["PERMIT_STATUS"],
            "submitted_date": ["DATE_SUBMITTED"],
            "issued_date": ["DATE_ISSUED"],
        },
    ),
    CityConfig(
        key="burnaby",
        name="Burnaby",
        endpoint=EndpointConfig(
            kind="scrape",
            url=SCRAPE_PREFIX + "https://www.burnaby.ca/city-services/permits-licences/building-permits/permits-issued",
        ),
        trust_score=0.8,
        id_prefix="BUR",
    ),
]
