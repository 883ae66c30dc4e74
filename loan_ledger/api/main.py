"""FastAPI application factory"""

import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from loan_ledger.api.dependencies import get_request_id
from loan_ledger.api.middleware import RequestIDMiddleware, MetricsMiddleware
from loan_ledger.api.v1 import agreements, applications, contracts, judgments, ledger
from loan_ledger.config import settings
from loan_ledger.domain.exceptions import (
    ConflictError,
    DomainException,
    NotFoundError,
    TransactionTimeoutError,
    UnprocessableEntityError,
    ValidationError,
)
from loan_ledger.infrastructure.database.store import LedgerStore
from loan_ledger.infrastructure.observability.logging import setup_logging

ERROR_STATUS_CODES = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    UnprocessableEntityError: 422,
    TransactionTimeoutError: 504,
}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Translate domain errors into HTTP responses carrying the error message"""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES.items() if isinstance(exc, error_type)),
        500,
    )
    log = logging.warning if status_code < 500 else logging.error
    log(
        f"{type(exc).__name__}: {exc}",
        extra={"request_id": get_request_id(request), "path": request.url.path, "status_code": status_code},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app(store: Optional[LedgerStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        store: Ledger store to serve; built from settings.database_url when omitted
    """
    setup_logging(settings.log_level)

    if store is None:
        store = LedgerStore.from_url(
            settings.database_url,
            timeout_seconds=settings.transaction_timeout_seconds,
            echo=settings.sql_echo,
        )

    app = FastAPI(
        title="Loan Ledger",
        description="Loan lifecycle and balance ledger service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.store = store

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(applications.router, prefix="/v1", tags=["applications"])
    app.include_router(judgments.router, prefix="/v1", tags=["judgments"])
    app.include_router(contracts.router, prefix="/v1", tags=["contracts"])
    app.include_router(ledger.router, prefix="/v1", tags=["ledger"])
    app.include_router(agreements.router, prefix="/v1", tags=["agreements"])

    return app


def run() -> None:
    """Create the ledger tables if missing and serve the API"""
    store = LedgerStore.from_url(
        settings.database_url,
        timeout_seconds=settings.transaction_timeout_seconds,
        echo=settings.sql_echo,
    )
    store.create_schema()
    logging.info("Ledger tables ready", extra={"service": settings.service_name})
    uvicorn.run(create_app(store), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
