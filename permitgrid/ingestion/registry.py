"""City registry: city key -> {endpoint config, trust score}.

Connectors are built from a factory table keyed on the endpoint kind, so a
new municipality is one registry entry (plus a connector class if it speaks
a new wire format) and the orchestrator never changes.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type

import httpx
from pydantic import TypeAdapter

from permitgrid.core.config import Settings
from permitgrid.core.errors import ConfigurationError
from permitgrid.core.logging import get_logger
from .arcgis import ArcGISConnector
from .base import BaseConnector, Clock
from .cities import DEFAULT_CITIES, CityConfig
from .opendata import OpenDataConnector
from .scrape import ScrapePendingConnector

log = get_logger("ingestion.registry")

CONNECTOR_KINDS: Dict[str, Type[BaseConnector]] = {
    "opendata": OpenDataConnector,
    "arcgis": ArcGISConnector,
    "scrape": ScrapePendingConnector,
}

_CITY_LIST = TypeAdapter(List[CityConfig])


class ConnectorRegistry:
    """Configured cities plus the connector class for each endpoint kind."""

    def __init__(
        self,
        cities: Iterable[CityConfig],
        connector_kinds: Optional[Dict[str, Type[BaseConnector]]] = None,
    ):
        self._cities: Dict[str, CityConfig] = {}
        for city in cities:
            if city.key in self._cities:
                raise ConfigurationError(f"duplicate city key: {city.key}", city=city.key)
            self._cities[city.key] = city
        self._kinds: Dict[str, Type[BaseConnector]] = dict(connector_kinds or CONNECTOR_KINDS)

    @classmethod
    def default(cls) -> "ConnectorRegistry":
        return cls(DEFAULT_CITIES)

    @classmethod
    def from_file(cls, path: str | Path) -> "ConnectorRegistry":
        """Load a JSON array of city entries."""
        text = Path(path).read_text(encoding="utf-8")
        cities = _CITY_LIST.validate_json(text)
        log.info(f"Loaded {len(cities)} cities from {path}")
        return cls(cities)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectorRegistry":
        if settings.REGISTRY_PATH:
            return cls.from_file(settings.REGISTRY_PATH)
        return cls.default()

    def register_kind(self, kind: str, connector_cls: Type[BaseConnector]) -> None:
        self._kinds[kind] = connector_cls

    @property
    def keys(self) -> List[str]:
        return list(self._cities)

    def __contains__(self, key: object) -> bool:
        return key in self._cities

    def __len__(self) -> int:
        return len(self._cities)

    def get(self, key: str) -> CityConfig:
        try:
            return self._cities[key]
        except KeyError:
            raise ConfigurationError(f"city '{key}' is not in the registry", city=key) from None

    def lookup_key(self, value: str) -> Optional[str]:
        """Match a city key or display name ("Maple Ridge" -> "maple_ridge")."""
        text = (value or "").strip()
        if text in self._cities:
            return text
        slug = "_".join(text.lower().replace("-", " ").split())
        if slug in self._cities:
            return slug
        for key, city in self._cities.items():
            if city.name.lower() == text.lower():
                return key
        return None

    def cities(self) -> List[CityConfig]:
        return list(self._cities.values())

    def trust_scores(self) -> Dict[str, float]:
        return {key: city.trust_score for key, city in self._cities.items()}

    def build_connector(
        self,
        key: str,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ) -> BaseConnector:
        city = self.get(key)
        connector_cls = self._kinds.get(city.endpoint.kind)
        if connector_cls is None:
            raise ConfigurationError(f"no connector for endpoint kind '{city.endpoint.kind}'", city=key)
        return connector_cls(city, settings=settings, transport=transport, clock=clock)

    def describe(self) -> List[dict]:
        return [
            {
                "key": city.key,
                "name": city.name,
                "kind": city.endpoint.kind,
                "endpoint": city.endpoint.url,
                "trust_score": city.trust_score,
            }
            for city in self._cities.values()
        ]

    def dump_json(self) -> str:
        return json.dumps([city.model_dump(mode="json") for city in self._cities.values()], indent=2)
