"""
Main FastAPI Application

Entry point for the StoreHub multi-tenant storefront platform.
Configures middleware, routes, error handlers, and startup/shutdown events.

Every error leaves the API as {"error": "<message>", "type": "<error_type>"}.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from fastapi.staticfiles import StaticFiles
from fastapi.utils import generate_unique_id
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import time
import uuid
from contextlib import asynccontextmanager

from storehub import __version__
from storehub.config import get_settings
from storehub.database import engine, init_db
from storehub.middleware.tenant import TenantHintMiddleware
from storehub.middleware.rate_limit import RateLimitMiddleware
from storehub.utils.logging import setup_logging, get_logger, log_security_event, request_id_var
from storehub.core.exceptions import AppError, TenantIsolationError

# Import routers
from storehub.api.endpoints import (
    analytics,
    api_keys,
    audit_logs,
    auth,
    categories,
    customers,
    jobs,
    ledger,
    loyalty,
    notifications,
    orders,
    products,
    tenants,
    users,
    webhooks,
)

settings = get_settings()

# Setup logging
setup_logging(
    log_level=settings.LOG_LEVEL,
    json_format=(settings.ENVIRONMENT == "production")
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting StoreHub in {settings.ENVIRONMENT} mode")

    # Initialize database tables (dev only - use migrations in production)
    if settings.ENVIRONMENT == "development":
        logger.warning("Initializing database tables (dev mode)")
        init_db()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application")
    engine.dispose()
    logger.info("Application shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="StoreHub",
    description="Multi-tenant storefront backend: catalog, orders, credit ledger, loyalty and automation webhooks",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)


# ============================================================================
# MIDDLEWARE CONFIGURATION
# ============================================================================
# Starlette runs the last-added middleware first. Effective order per request:
# CORS -> request id/timing -> tenant hint -> rate limit -> routes

# Rate limiting reads the subdomain hint, so it sits inside the hint middleware
app.add_middleware(RateLimitMiddleware)

app.add_middleware(TenantHintMiddleware)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Assign a request id and add X-Request-ID / X-Process-Time headers."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    token = request_id_var.set(request_id)

    start_time = time.time()
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Process-Time"] = f"{time.time() - start_time:.4f}"
    return response


# CORS Middleware
# SECURITY: In production, restrict ALLOWED_ORIGINS to the storefront domains
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS if settings.ENVIRONMENT != "development" else ["*"],
    allow_credentials=settings.ENVIRONMENT != "development",
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================

def error_response(status_code: int, message, error_type: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "type": error_type},
        headers=headers or {}
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """
    Handle application errors.

    Tenant isolation violations are logged as security events at ERROR.
    """
    if isinstance(exc, TenantIsolationError):
        log_security_event(
            exc.error_type,
            {
                "path": request.url.path,
                "method": request.method,
                "detail": exc.detail,
                "tenant_id": getattr(request.state, "tenant_id", None),
                "user_id": getattr(request.state, "user_id", None),
            },
            logger,
            level=logging.ERROR,
        )

    return error_response(exc.status_code, exc.detail, exc.error_type, exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    """Framework errors (unknown route, wrong method)."""
    return error_response(exc.status_code, exc.detail, "http_error", getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed input is a 400 with the failing fields listed."""
    errors = [
        {
            "loc": [str(part) for part in error.get("loc", ())],
            "msg": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "type": "validation_error", "errors": errors}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all exception handler.

    SECURITY: Don't expose internal errors in production.
    Log full details but return generic error to client.
    """
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "tenant_id": getattr(request.state, "tenant_id", None)
        }
    )

    if settings.DEBUG:
        return error_response(500, f"{type(exc).__name__}: {exc}", "internal_error")
    return error_response(500, "Internal server error", "internal_error")


# ============================================================================
# ROUTES
# ============================================================================

# Health check endpoint (no auth required)
@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint for load balancers."""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__
    }


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return {
        "message": "StoreHub API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Uploaded logos and product images
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")


def tenant_path_unique_id(route: APIRoute) -> str:
    """Operation ids for the /tenants/{tenant_id} mounts, kept apart from the plain ones."""
    return f"tenant_path_{generate_unique_id(route)}"


# Routers whose tenant can also be named in the path
TENANT_ROUTERS = [
    auth.router,
    users.router,
    customers.router,
    categories.router,
    products.router,
    orders.router,
    ledger.router,
    loyalty.router,
    notifications.router,
    webhooks.router,
    api_keys.router,
    audit_logs.router,
    analytics.router,
]

for router in TENANT_ROUTERS:
    app.include_router(router, prefix="/api/v1")
    app.include_router(
        router,
        prefix="/api/v1/tenants/{tenant_id}",
        generate_unique_id_function=tenant_path_unique_id,
    )

# Platform routers
app.include_router(tenants.router, prefix="/api/v1")
app.include_router(analytics.platform_router, prefix="/api/v1")
app.include_router(jobs.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    logger.info(f"StoreHub {__version__} ({settings.ENVIRONMENT}), base domain {settings.BASE_DOMAIN}")
    uvicorn.run(
        "storehub.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
