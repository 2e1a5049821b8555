"""
FastAPI application factory.

* Registers routes for auth, vehicles, bookings, admin and utils.
* Starts / stops the revenue reconciliation worker via lifespan events.
* Translates domain errors into ``{"detail": ...}`` JSON responses.
* Applies rate-limiting middleware.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.middleware import limiter
from src.api.routes import admin, auth, bookings, utils, vehicles
from src.domain.errors import DomainError
from src.infrastructure.database import dispose_engine
from src.infrastructure.mailer import close_mailer
from src.infrastructure.redis_client import close_redis
from src.workers import reconciler as _reconciler

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reconciliation worker on startup; stop on shutdown."""
    await _reconciler.start_reconcile_loop()
    yield
    await _reconciler.stop_reconcile_loop()
    await close_redis()
    await close_mailer()
    await dispose_engine()


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s", exc, request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    detail = f"{location}: {message}" if location else message
    return JSONResponse(status_code=400, content={"detail": detail})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Fleet Booking API",
        description=(
            "Vehicle owners register vehicles and assign drivers; customers "
            "book rides that drivers accept, start and complete.  Completed "
            "fares are credited to the vehicle owner exactly once."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Error translation
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Routers
    for module in (auth, vehicles, bookings, admin, utils):
        app.include_router(module.router, prefix="/api/v1")

    return app
