"""Placeholder for municipalities that publish no structured API yet."""

from __future__ import annotations

from typing import Any, Dict, Tuple

from permitgrid.core.logging import get_logger
from permitgrid.schemas.results import SourceResult
from .base import BaseConnector
from .cities import SCRAPE_PREFIX

log = get_logger("ingestion.scrape")

SCRAPE_REQUIRED = "scrape required"


class ScrapePendingConnector(BaseConnector):
    """Reports a failed source with a recognizable marker, without any network call."""

    kind = "scrape"

    @property
    def page_url(self) -> str:
        url = self.city.endpoint.url
        return url[len(SCRAPE_PREFIX):] if url.startswith(SCRAPE_PREFIX) else url

    def build_request(self, query: str) -> Tuple[str, Dict[str, Any]]:
        return self.page_url, {}

    async def fetch(self, query: str) -> SourceResult:
        log.info(f"Source={self.name} has no structured API yet ({self.page_url})")
        return self._failed(
            self.city.endpoint.url,
            self.clock(),
            f"{SCRAPE_REQUIRED}: {self.page_url}",
        )
