"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from cfs_portal.core.config import settings
from cfs_portal.core.structured_logging import configure_logging
from cfs_portal.db.session import engine
from cfs_portal.schemas.cfs import flatten_validation_errors
from cfs_portal.services.cfs_errors import (
    GENERIC_ERROR_MESSAGE,
    AuthorizationError,
    CfsError,
    CfsValidationError,
    NotFoundError,
    OrganizationRequiredError,
)

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Reporter details never leave the service
    )
    logger.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from cfs_portal.core.rate_limit import limiter


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="CFS Portal API",
    description="Call-for-Service intake and lifecycle API",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - must be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,  # Required for cookies
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
)

# ============================================================================
# Error Handling
# ============================================================================

@app.exception_handler(CfsError)
async def cfs_error_handler(request: Request, exc: CfsError) -> JSONResponse:
    """Translate service errors; only allow-listed text reaches the caller."""
    if isinstance(exc, (CfsValidationError, AuthorizationError, OrganizationRequiredError, NotFoundError)):
        logger.info("CFS request rejected: %s", type(exc).__name__, extra={"path": request.url.path})

    body: dict = {"detail": exc.public_message}
    if isinstance(exc, CfsValidationError):
        body["field_errors"] = exc.field_errors
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema errors use the same field-scoped shape as service validation."""
    field_errors = flatten_validation_errors(exc.errors())
    detail = next(iter(field_errors.values())) if len(field_errors) == 1 else "Check the highlighted fields."
    return JSONResponse(status_code=400, content={"detail": detail, "field_errors": field_errors})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR_MESSAGE})


# ============================================================================
# Routers
# ============================================================================

from cfs_portal.routers import auth, cfs, cfs_attachments, public

app.include_router(auth.router)
app.include_router(cfs.router)
app.include_router(cfs_attachments.router)
app.include_router(public.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
