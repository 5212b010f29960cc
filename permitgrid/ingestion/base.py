"""Shared connector contract: fetch(query) -> SourceResult, never raises."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx

from permitgrid.core.config import Settings, settings as default_settings
from permitgrid.core.errors import ConnectorError, NetworkError, ParseError, RecordValidationError
from permitgrid.core.logging import get_logger
from permitgrid.ingestion.cities import CityConfig
from permitgrid.ingestion.envelopes import extract_records
from permitgrid.ingestion.fields import FieldMapping
from permitgrid.schemas.permit import FieldIssue, PermitRecord, parse_record
from permitgrid.schemas.results import SourceOutcome, SourceResult

log = get_logger("ingestion.connector")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BaseConnector(ABC):
    """One municipality, one endpoint family.

    Subclasses only describe the request; the fetch/parse/validate pipeline
    and the conversion of every failure into a SourceResult live here.
    """

    kind: str = "base"

    def __init__(
        self,
        city: CityConfig,
        *,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Clock] = None,
    ):
        self.city = city
        self.settings = settings or default_settings
        self.transport = transport
        self.clock = clock or utc_now
        self.mapping = FieldMapping(overrides=city.fields, constants=city.constants)

    @property
    def name(self) -> str:
        return self.city.key

    @abstractmethod
    def build_request(self, query: str) -> Tuple[str, Dict[str, Any]]:
        """Return (url, query params) for this source."""

    async def fetch(self, query: str) -> SourceResult:
        fetched_at = self.clock()
        raw_source = self.city.endpoint.url
        try:
            url, params = self.build_request(query)
            raw_source = str(httpx.URL(url, params=params)) if params else url
            payload = await self._get_json(url, params)
            rows = extract_records(payload)
            return self._build_result(rows, raw_source, fetched_at)
        except ConnectorError as exc:
            log.warning(f"Source={self.name} failed: {exc.describe()}")
            return self._failed(raw_source, fetched_at, exc.describe())
        except Exception as exc:  # noqa: BLE001
            log.exception(f"Source={self.name} crashed: {exc}")
            return self._failed(raw_source, fetched_at, f"unexpected: {type(exc).__name__}: {exc}")

    # -------------------------------------------------------------------------
    # Network
    # -------------------------------------------------------------------------
    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.HTTP_TIMEOUT_SECONDS,
            transport=self.transport,
            headers={"Accept": "application/json", "User-Agent": "permitgrid/1.0"},
            follow_redirects=True,
        )

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        attempts = max(0, self.settings.CONNECTOR_MAX_RETRIES) + 1
        last_error: Optional[NetworkError] = None

        for attempt in range(1, attempts + 1):
            try:
                async with self._client() as client:
                    resp = await client.get(url, params=params)
                    resp.raise_for_status()
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise ParseError(f"response body is not JSON: {exc}", city=self.name) from exc
            except httpx.HTTPStatusError as exc:
                last_error = NetworkError(f"HTTP {exc.response.status_code}", city=self.name)
                if exc.response.status_code < 500:
                    break
            except httpx.TimeoutException as exc:
                last_error = NetworkError(f"request timed out: {type(exc).__name__}", city=self.name)
            except httpx.HTTPError as exc:
                last_error = NetworkError(f"{type(exc).__name__}: {exc}", city=self.name)

            if attempt < attempts:
                log.debug(f"Source={self.name} attempt {attempt} failed ({last_error}); retrying")
                await asyncio.sleep(self.settings.RETRY_BACKOFF_SECONDS * attempt)

        raise last_error or NetworkError("request failed", city=self.name)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------
    def _build_result(self, rows: List[Any], raw_source: str, fetched_at: datetime) -> SourceResult:
        warnings: List[FieldIssue] = []
        kept: Dict[str, PermitRecord] = {}
        order: List[str] = []
        dropped = 0

        for row in rows:
            if not isinstance(row, dict):
                dropped += 1
                warnings.append(FieldIssue(field="record", message=f"expected an object, got {type(row).__name__}"))
                continue

            draft = self.mapping.draft(
                row,
                city=self.city.name,
                id_prefix=self.city.prefix,
                source=raw_source,
                fetched_at=fetched_at,
            )
            try:
                record = parse_record(draft)
            except RecordValidationError as exc:
                dropped += 1
                warnings.extend(exc.issues)
                continue

            existing = kept.get(record.id)
            if existing is None:
                kept[record.id] = record
                order.append(record.id)
                continue

            warnings.append(FieldIssue(record_id=record.id, field="id", message="duplicate id within source"))
            if record.source_updated_at > existing.source_updated_at:
                kept[record.id] = record

        if dropped:
            log.warning(f"Source={self.name} dropped {dropped} of {len(rows)} records")
        log.info(f"Source={self.name} fetched={len(rows)} valid={len(kept)}")

        return SourceResult(
            city=self.city.name,
            city_key=self.city.key,
            items=[kept[record_id] for record_id in order],
            raw_source=raw_source,
            outcome=SourceOutcome.PARTIAL if dropped else SourceOutcome.SUCCESS,
            warnings=warnings,
            raw_count=len(rows),
            dropped_count=dropped,
            fetched_at=fetched_at,
            trust_score=self.city.trust_score,
        )

    def _failed(self, raw_source: str, fetched_at: datetime, error: str) -> SourceResult:
        return failed_result(self.city, raw_source=raw_source, fetched_at=fetched_at, error=error)


def failed_result(city: CityConfig, *, raw_source: str, fetched_at: datetime, error: str) -> SourceResult:
    return SourceResult(
        city=city.name,
        city_key=city.key,
        items=[],
        raw_source=raw_source,
        outcome=SourceOutcome.FAILED,
        error=error,
        fetched_at=fetched_at,
        trust_score=city.trust_score,
    )
