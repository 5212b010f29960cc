"""Per-source and aggregate result shapes."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from permitgrid.schemas.permit import FieldIssue, PermitRecord


class SourceOutcome(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class SourceResult(BaseModel):
    """Outcome of one connector invocation. Never mutated after construction."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    city: str
    city_key: str
    items: List[PermitRecord] = Field(default_factory=list)
    raw_source: str
    outcome: SourceOutcome
    error: Optional[str] = None
    warnings: List[FieldIssue] = Field(default_factory=list)
    raw_count: int = 0
    dropped_count: int = 0
    fetched_at: datetime
    trust_score: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def responded(self) -> bool:
        return self.outcome is not SourceOutcome.FAILED

    @property
    def valid_ratio(self) -> float:
        """Share of raw records that passed validation (duplicates count as valid)."""
        if self.raw_count <= 0:
            return 0.0
        return max(0.0, (self.raw_count - self.dropped_count) / self.raw_count)


class AggregateResult(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    query: str
    total_items: int
    cities: List[SourceResult]
    aggregated_items: List[PermitRecord]
    confidence: float = Field(ge=0.0, le=1.0)
    notes: List[str] = Field(default_factory=list)


class ProvenanceEntry(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    city: str
    source: str
    ok: bool
    records: int
    fetched_at: int  # epoch milliseconds
    error: Optional[str] = None


class SmartFetchResponse(BaseModel):
    """Single scored answer wrapping the aggregate computation."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    ok: bool
    payload: List[PermitRecord]
    confidence: float = Field(ge=0.0, le=1.0)
    provenance: List[ProvenanceEntry]
    notes: Optional[str] = None
