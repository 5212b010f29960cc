"""Fetch entrypoint - run one aggregate permit query from the command line.

Usage:
    python -m permitgrid.fetch_entrypoint "main st"                 # All cities
    python -m permitgrid.fetch_entrypoint "main st" vancouver       # One city
    python -m permitgrid.fetch_entrypoint "" surrey "Maple Ridge"   # Several cities

The AggregateResult JSON is the only thing written to stdout; logs go to stderr.
Exit codes: 0 when at least one source responded, 1 when none did, 2 on bad usage.
"""

import asyncio
import sys
from typing import List, Optional

from permitgrid.core.config import settings
from permitgrid.core.logging import configure_logging, get_logger
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.schemas.results import AggregateResult
from permitgrid.services.aggregation_service import PermitAggregator, last_fetched

logger = get_logger("fetch_entrypoint")


async def run_query(query: str, cities: Optional[List[str]] = None) -> AggregateResult:
    """Aggregate one query across the configured registry."""
    registry = ConnectorRegistry.from_settings(settings)
    aggregator = PermitAggregator(registry, settings)
    return await aggregator.fetch_all(query, cities or None)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    configure_logging(stream="stderr", force=True)

    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        logger.error("Missing query. Usage: python -m permitgrid.fetch_entrypoint <query> [city ...]")
        return 2

    query, cities = args[0], args[1:]
    logger.info(f"Permit query starting: q={query!r} cities={cities or 'all'}")

    result = asyncio.run(run_query(query, cities))
    as_of = last_fetched(result)
    logger.info(f"Permit query completed: {result.total_items} items, confidence={result.confidence}, as of {as_of}")

    sys.stdout.write(result.model_dump_json(by_alias=True, indent=2) + "\n")
    sys.stdout.flush()

    if not any(source.responded for source in result.cities):
        logger.error("No source responded")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
