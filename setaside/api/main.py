"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from setaside.api.dependencies import get_request_id
from setaside.api.middleware import RequestIDMiddleware, MetricsMiddleware
from setaside.api.v1 import balances, engine, settings as cycle_settings
from setaside.domain.exceptions import (
    ConcurrentUpdateError,
    DomainException,
    InvalidOverrideError,
    InvalidRecurrenceError,
    ObligationNotFoundError,
)
from setaside.infrastructure.observability.logging import setup_logging
from setaside.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first; anything else in the domain tree is a bad request
DOMAIN_STATUS_CODES = (
    (ObligationNotFoundError, 404),
    (ConcurrentUpdateError, 409),
    (InvalidOverrideError, 422),
    (InvalidRecurrenceError, 422),
)


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Map domain errors raised by any route onto HTTP status codes"""
    status_code = next((code for error, code in DOMAIN_STATUS_CODES if isinstance(exc, error)), 400)
    logging.warning(
        f"{type(exc).__name__}: {exc}",
        extra={"request_id": get_request_id(request), "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Setaside Funding Engine",
        description="Sinking-fund contribution recommendations for recurring and one-off obligations",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(engine.router, prefix="/v1", tags=["engine"])
    app.include_router(cycle_settings.router, prefix="/v1", tags=["settings"])
    app.include_router(balances.router, prefix="/v1", tags=["balances"])

    return app


app = create_app()
