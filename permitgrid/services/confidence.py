"""Aggregate confidence and provenance for a set of source results."""

from __future__ import annotations

from typing import List, Sequence

from permitgrid.schemas.results import ProvenanceEntry, SourceResult

NO_DATA_NOTE = "no data: every source failed"


def compute_confidence(results: Sequence[SourceResult], failure_penalty: float = 0.5) -> float:
    """Record-count weighted trust of the sources that returned data.

    Each contributing source scores ``trust * valid_ratio`` and is weighted by
    its number of records. When sources answered but none had a matching
    record, the plain mean of their trust scores is used instead. The result
    is then scaled by ``1 - failure_penalty * failed / total``. Returns 0 only
    when every source failed.
    """
    responded = [result for result in results if result.responded]
    if not responded:
        return 0.0

    weighted = 0.0
    weight = 0
    for result in responded:
        if not result.items:
            continue
        count = len(result.items)
        weighted += count * result.trust_score * result.valid_ratio
        weight += count

    if weight:
        base = weighted / weight
    else:
        base = sum(result.trust_score for result in responded) / len(responded)

    failed = len(results) - len(responded)
    penalty = 1.0 - min(1.0, max(0.0, failure_penalty)) * failed / len(results)
    confidence = base * penalty
    return round(min(1.0, max(0.0, confidence)), 4)


def responded_note(results: Sequence[SourceResult]) -> str:
    responded = sum(1 for result in results if result.responded)
    return f"{responded} of {len(results)} sources responded"


def build_notes(results: Sequence[SourceResult], total_items: int) -> List[str]:
    notes = [responded_note(results)]
    if total_items == 0:
        if results and all(not result.responded for result in results):
            notes.append(NO_DATA_NOTE)
        else:
            notes.append("no matching permits")
    for result in results:
        if not result.responded:
            notes.append(f"{result.city}: {result.error or 'failed'}")
        elif result.dropped_count:
            notes.append(f"{result.city}: dropped {result.dropped_count} of {result.raw_count} records")
    return notes


def provenance(results: Sequence[SourceResult]) -> List[ProvenanceEntry]:
    return [
        ProvenanceEntry(
            city=result.city,
            source=result.raw_source,
            ok=result.responded,
            records=len(result.items),
            fetched_at=int(result.fetched_at.timestamp() * 1000),
            error=result.error,
        )
        for result in results
    ]
