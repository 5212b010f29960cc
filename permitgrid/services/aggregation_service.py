"""Permit aggregation across every registered municipality.

Responsibilities:
- Fan out one query to every configured connector concurrently
- Isolate per-source failures (nothing a connector does reaches the caller)
- Merge valid records into one deterministically ordered list
- Score the aggregate and keep per-source provenance
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional, Sequence

import httpx

from permitgrid.core.config import Settings, settings as default_settings
from permitgrid.core.errors import ConfigurationError
from permitgrid.core.logging import get_logger
from permitgrid.ingestion.base import BaseConnector, Clock, utc_now
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.ingestion.runner import IngestionRunner
from permitgrid.schemas.permit import PermitRecord
from permitgrid.schemas.results import (
    AggregateResult,
    SmartFetchResponse,
    SourceOutcome,
    SourceResult,
)
from permitgrid.services.cache import ResultCache, cache_key
from permitgrid.services.confidence import build_notes, compute_confidence, provenance

log = get_logger("aggregation_service")

FetchMode = Literal["any", "address"]


class PermitAggregator:
    """Holds configuration only; safe to share between concurrent queries."""

    def __init__(
        self,
        registry: ConnectorRegistry,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
        cache: Optional[ResultCache[AggregateResult]] = None,
    ):
        self.registry = registry
        self.settings = settings or default_settings
        self.transport = transport
        self.clock = clock or utc_now
        self.cache = cache

    async def fetch_all(self, query: str, cities: Optional[Sequence[str]] = None) -> AggregateResult:
        """Run every (or every requested) connector and merge the results."""
        query = (query or "").strip()
        requested = self._requested(cities)

        key = cache_key(query, requested)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                log.debug(f"Cache hit for query={query!r} cities={key[1]}")
                return cached

        log.info(f"Aggregating query={query!r} across {len(requested)} sources")

        slots: Dict[str, SourceResult] = {}
        connectors: List[BaseConnector] = []
        for city_key in requested:
            try:
                connectors.append(
                    self.registry.build_connector(
                        city_key,
                        settings=self.settings,
                        transport=self.transport,
                        clock=self.clock,
                    )
                )
            except ConfigurationError as exc:
                log.warning(f"Source={city_key} not runnable: {exc}")
                slots[city_key] = self._unconfigured(city_key, exc)

        runner = IngestionRunner(connectors, timeout=self.settings.CONNECTOR_TIMEOUT_SECONDS, clock=self.clock)
        for result in await runner.run(query):
            slots[result.city_key] = result

        results = [slots[city_key] for city_key in requested]
        aggregate = self._merge(query, results)

        # an outage must not outlive the upstream recovering
        if self.cache is not None and any(result.responded for result in results):
            self.cache.set(key, aggregate)
        return aggregate

    async def smart_fetch(
        self,
        query: str,
        cities: Optional[Sequence[str]] = None,
        mode: FetchMode = "any",
    ) -> SmartFetchResponse:
        """Single scored answer over the same computation as fetch_all."""
        aggregate = await self.fetch_all(query, cities)
        payload = aggregate.aggregated_items
        notes = list(aggregate.notes)

        if mode == "address" and aggregate.query:
            needle = aggregate.query.lower()
            payload = [record for record in payload if needle in record.address.lower()]
            notes.append(f"{len(payload)} of {aggregate.total_items} records match the address")

        return SmartFetchResponse(
            ok=bool(payload),
            payload=payload,
            confidence=aggregate.confidence if payload else 0.0,
            provenance=provenance(aggregate.cities),
            notes="; ".join(notes),
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    def _requested(self, cities: Optional[Sequence[str]]) -> List[str]:
        # ?city= with no value arrives as [""]; treat it as no filter
        names = [city.strip() for city in cities or [] if city and city.strip()]
        if not names:
            return self.registry.keys
        requested: List[str] = []
        for name in names:
            key = self.registry.lookup_key(name) or name
            if key not in requested:
                requested.append(key)
        return requested

    def _unconfigured(self, city_key: str, exc: ConfigurationError) -> SourceResult:
        trust = self.registry.get(city_key).trust_score if city_key in self.registry else 0.0
        return SourceResult(
            city=self.registry.get(city_key).name if city_key in self.registry else city_key,
            city_key=city_key,
            items=[],
            raw_source="",
            outcome=SourceOutcome.FAILED,
            error=exc.describe(),
            fetched_at=self.clock(),
            trust_score=trust,
        )

    def _merge(self, query: str, results: List[SourceResult]) -> AggregateResult:
        items: List[PermitRecord] = [record for result in results for record in result.items]
        items.sort(key=PermitRecord.sort_key)

        confidence = compute_confidence(results, self.settings.FAILURE_PENALTY)
        notes = build_notes(results, len(items))

        failed = [result.city for result in results if result.outcome is SourceOutcome.FAILED]
        if failed:
            log.warning(f"Aggregate for {query!r}: failed sources {failed}")
        log.info(f"Aggregate for {query!r}: items={len(items)} confidence={confidence} ({notes[0]})")

        return AggregateResult(
            query=query,
            total_items=len(items),
            cities=results,
            aggregated_items=items,
            confidence=confidence,
            notes=notes,
        )


def last_fetched(result: AggregateResult) -> Optional[datetime]:
    """Most recent fetch time across responding sources ("as of <time>")."""
    times = [source.fetched_at for source in result.cities if source.responded]
    return max(times) if times else None
