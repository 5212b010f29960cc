# Services package
from permitgrid.services.aggregation_service import PermitAggregator, last_fetched
from permitgrid.services.cache import ResultCache, cache_key
from permitgrid.services.confidence import build_notes, compute_confidence, provenance

__all__ = [
    "PermitAggregator",
    "last_fetched",
    "ResultCache",
    "cache_key",
    "build_notes",
    "compute_confidence",
    "provenance",
]
