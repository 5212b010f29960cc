from contextlib import asynccontextmanager

from fastapi import FastAPI

from permitgrid.api.routes import health, permits
from permitgrid.core.config import settings
from permitgrid.core.logging import get_logger
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.services.aggregation_service import PermitAggregator
from permitgrid.services.cache import ResultCache


log = get_logger("app")


def build_aggregator() -> PermitAggregator:
    """Wire registry, settings and the optional result cache."""
    registry = ConnectorRegistry.from_settings(settings)
    cache = None
    if settings.cache_enabled:
        cache = ResultCache(ttl=settings.CACHE_TTL_SECONDS, max_entries=settings.CACHE_MAX_ENTRIES)
    return PermitAggregator(registry, settings, cache=cache)


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")
    if settings.is_production:
        log.info("Production mode: Debug disabled, docs disabled, stricter logging")
    else:
        log.info("Development mode: Debug enabled, docs available")

    # Tests may install their own aggregator before startup
    if getattr(app.state, "aggregator", None) is None:
        try:
            app.state.aggregator = build_aggregator()
        except Exception:
            log.exception("Failed to build the city registry on startup")
            raise

    aggregator: PermitAggregator = app.state.aggregator
    log.info(f"Registry loaded: {', '.join(aggregator.registry.keys) or '(empty)'}")
    if aggregator.cache is not None:
        log.info(f"Result cache enabled (ttl={aggregator.cache.ttl}s)")

    yield

    log.info("Application shutdown complete")


app = FastAPI(
    title="Permit Aggregation Backend",
    description="Normalized, confidence-scored building permits from municipal open-data endpoints",
    version="1.0.0",
    lifespan=lifespan,
    # Disable docs in production
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(permits.router)
app.include_router(health.router)
