from permitgrid.api.routes.health import router as health_router
from permitgrid.api.routes.permits import router as permits_router

__all__ = ["health_router", "permits_router"]
