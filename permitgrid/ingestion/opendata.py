"""Open-data portal search API (Opendatasoft records search)."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from permitgrid.core.errors import ConfigurationError
from .base import BaseConnector


class OpenDataConnector(BaseConnector):
    """Query-string search: ``?dataset=<id>&q=<query>&rows=<n>``."""

    kind = "opendata"

    def build_request(self, query: str) -> Tuple[str, Dict[str, Any]]:
        endpoint = self.city.endpoint
        url = endpoint.url.split("?")[0]
        if not url.startswith(("http://", "https://")):
            raise ConfigurationError(f"invalid open-data endpoint: {endpoint.url}", city=self.name)

        params: Dict[str, Any] = {}
        if endpoint.dataset:
            params["dataset"] = endpoint.dataset
        query = (query or "").strip()
        if query:
            params["q"] = query
        params["rows"] = str(self.settings.RESULT_RECORD_COUNT)
        return url, params
