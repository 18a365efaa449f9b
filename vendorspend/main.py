"""
FastAPI application entry point for the vendor spend validation platform.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from starlette.responses import Response

from vendorspend.api.api_v1.api import api_router
from vendorspend.api.schemas.common import ErrorResponse, HealthResponse
from vendorspend.clients.extraction import FieldExtractionClient, TextExtractionClient
from vendorspend.clients.identity import IdentityClient
from vendorspend.core.clock import utcnow
from vendorspend.core.config import settings
from vendorspend.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    ExtractionError,
    NotFoundError,
    TransientExternalError,
    ValidationError,
    VendorSpendError,
    WorkflowError,
)
from vendorspend.core.logging import setup_logging
from vendorspend.core.metrics import REQUEST_LATENCY
from vendorspend.db.session import AsyncSessionLocal
from vendorspend.services.auth_service import PermissionCache

setup_logging(log_to_file=settings.ENVIRONMENT.lower() not in ["test", "testing"])
logger = logging.getLogger(__name__)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=0.1,
        environment=settings.ENVIRONMENT,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the shared external clients and permission cache; close them on shutdown."""
    logger.info("Starting Vendor Spend Validation API")

    app.state.identity_client = IdentityClient()
    app.state.text_extraction_client = TextExtractionClient()
    app.state.field_extraction_client = FieldExtractionClient()
    app.state.permission_cache = PermissionCache()

    yield

    logger.info("Shutting down Vendor Spend Validation API")
    await app.state.identity_client.aclose()
    await app.state.text_extraction_client.aclose()
    await app.state.field_extraction_client.aclose()
    app.state.permission_cache.clear()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["accept", "authorization", "content-type", "x-requested-with"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log all requests and responses."""
    start_time = time.time()
    logger.info(f"Request started: {request.method} {request.url}")

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(
            f"Request failed: {request.method} {request.url} "
            f"Error: {str(e)} "
            f"Time: {process_time:.3f}s"
        )
        raise

    process_time = time.time() - start_time
    REQUEST_LATENCY.labels(method=request.method, status=str(response.status_code)).observe(process_time)
    logger.info(
        f"Request completed: {request.method} {request.url} "
        f"Status: {response.status_code} "
        f"Time: {process_time:.3f}s"
    )
    response.headers["X-Process-Time"] = str(process_time)
    return response


ERROR_STATUS_CODES = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (AuthorizationError, status.HTTP_403_FORBIDDEN),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (WorkflowError, status.HTTP_409_CONFLICT),
    (ExtractionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (TransientExternalError, status.HTTP_502_BAD_GATEWAY),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
]


def status_code_for(exc: VendorSpendError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(VendorSpendError)
async def vendor_spend_exception_handler(request: Request, exc: VendorSpendError):
    """Map platform errors to HTTP responses."""
    status_code = status_code_for(exc)
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    elif status_code >= 500 or isinstance(exc, (ExtractionError, TransientExternalError)):
        logger.error(f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error=exc.error_code,
            message=exc.message,
            details=exc.details,
            timestamp=utcnow(),
        ).model_dump(mode="json"),
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="INTERNAL_SERVER_ERROR",
            message="An unexpected error occurred",
            timestamp=utcnow(),
        ).model_dump(mode="json"),
    )


app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    details = {"environment": settings.ENVIRONMENT}
    health_status = "healthy"
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
        details["database"] = "ok"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        details["database"] = "unavailable"
        health_status = "degraded"

    return HealthResponse(
        status=health_status,
        timestamp=utcnow(),
        version=settings.VERSION,
        details=details,
    )


@app.get("/metrics", tags=["Metrics"])
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "vendorspend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
