"""Application factory for the rental booking quote service."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .core.config import settings
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    setup_structured_logging,
    setup_tracing,
)
from .routers import booking_draft, health, metrics, pricing
from .services.draft_store import DraftStore
from .services.rental_api_client import RentalApiClient
from .workers.manager import WorkerManager

setup_structured_logging()

# stdlib loggers from uvicorn and httpx
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

EXCEPTION_HANDLERS = (
    (ProblemDetailsException, problem_details_handler),
    (RequestValidationError, request_validation_handler),
    (Exception, generic_exception_handler),
)

ROUTERS = (
    health.service_router,
    health.router,
    booking_draft.router,
    pricing.router,
    metrics.router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Own the draft store, the rental backend client and the draft expiry worker."""
    logger.info(
        "Starting booking quote service",
        extra={"environment": settings.environment, "rental_api": settings.rental_api_base_url}
    )
    setup_tracing(SERVICE_NAME)

    app.state.draft_store = DraftStore()
    app.state.rental_api_client = RentalApiClient()
    app.state.worker_manager = WorkerManager(app.state.draft_store)
    await app.state.worker_manager.start_all()

    try:
        yield
    finally:
        logger.info("Shutting down booking quote service")
        await app.state.worker_manager.stop_all()
        await app.state.rental_api_client.aclose()


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)


def register_routers(app: FastAPI) -> None:
    for router in ROUTERS:
        app.include_router(router)


def create_app() -> FastAPI:
    app = FastAPI(
        title="Rental Booking Quote API",
        description="RPC-over-HTTP API for composing vehicle rental bookings: offerings, packages, discounts, pricing, and submission",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )
    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)

    register_exception_handlers(app)
    register_routers(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rental_booking.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
