"""FastAPI routers package."""

from .booking_draft import router as booking_draft_router
from .health import router as health_router
from .metrics import router as metrics_router
from .pricing import router as pricing_router

__all__ = [
    "booking_draft_router",
    "health_router",
    "metrics_router",
    "pricing_router",
]
