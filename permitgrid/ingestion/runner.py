"""Concurrent fan-out over connectors with a per-connector deadline."""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from permitgrid.core.logging import get_logger
from permitgrid.schemas.results import SourceResult
from .base import BaseConnector, Clock, failed_result, utc_now

log = get_logger("ingestion.runner")


class IngestionRunner:
    """Runs every connector at once and returns one SourceResult per connector.

    Results come back in connector order, whatever order they complete in.
    A connector that overruns ``timeout`` is cancelled and reported as failed;
    its siblings are unaffected.
    """

    def __init__(self, connectors: Sequence[BaseConnector], timeout: float, clock: Optional[Clock] = None):
        self.connectors = list(connectors)
        self.timeout = timeout
        self.clock = clock or utc_now

    async def run(self, query: str) -> List[SourceResult]:
        outcomes = await asyncio.gather(
            *(self._run_one(connector, query) for connector in self.connectors),
            return_exceptions=True,
        )

        results: List[SourceResult] = []
        for connector, outcome in zip(self.connectors, outcomes):
            if isinstance(outcome, BaseException):
                # _run_one already converts errors; this covers cancellation of the task itself
                log.error(f"Source={connector.name} did not settle: {outcome!r}")
                outcome = failed_result(
                    connector.city,
                    raw_source=connector.city.endpoint.url,
                    fetched_at=self.clock(),
                    error=f"unexpected: {type(outcome).__name__}",
                )
            results.append(outcome)
        return results

    async def _run_one(self, connector: BaseConnector, query: str) -> SourceResult:
        try:
            return await asyncio.wait_for(connector.fetch(query), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning(f"Source={connector.name} timed out after {self.timeout}s")
            return failed_result(
                connector.city,
                raw_source=connector.city.endpoint.url,
                fetched_at=self.clock(),
                error=f"network: timed out after {self.timeout:g}s",
            )
        except Exception as exc:  # noqa: BLE001
            log.error(f"Source={connector.name} raised {type(exc).__name__}: {exc}")
            return failed_result(
                connector.city,
                raw_source=connector.city.endpoint.url,
                fetched_at=self.clock(),
                error=f"unexpected: {type(exc).__name__}: {exc}",
            )
