"""SecureShop Backend - Main FastAPI Application

E-commerce API demonstrating OWASP Top-10 mitigations.

This module creates and configures the main FastAPI application, including:
- All API routers (auth, catalog, orders, admin, redirect)
- The global route-authorization dependency
- Middleware (request ID correlation, security headers, CORS)
- Exception handlers that never leak internals
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from config import settings
from errors import SecureShopError, UnexpectedFailure, ValidationFailed

# Observability
from observability.logging_config import configure_logging
from observability.middleware import RequestContextMiddleware
from observability.context import new_correlation_id
from observability.router import router as observability_router

# Authentication & Authorization
from auth.dependencies import authorize_route
from auth.route_policy import include_router
from auth.router import router as auth_router
from users.router import router as users_router

# Domain Routers
from catalog.router import router as products_router
from catalog.router import admin_router as admin_products_router
from orders.router import router as orders_router
from orders.router import admin_router as admin_orders_router
from web.headers import SecurityHeadersMiddleware
from web.router import router as redirect_router

# Configure logging
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DOCS_ENABLED = settings.ENVIRONMENT != "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    The schema is not created here; see backend/scripts/init_db.py.
    """
    logger.info("SecureShop API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    yield

    logger.info("SecureShop API shutting down...")


# Create FastAPI application. authorize_route runs before every handler.
app = FastAPI(
    title="SecureShop API",
    description="E-commerce backend with credential management and IDOR protection",
    version="0.1.0",
    docs_url="/docs" if DOCS_ENABLED else None,
    redoc_url="/redoc" if DOCS_ENABLED else None,
    openapi_url="/openapi.json" if DOCS_ENABLED else None,
    lifespan=lifespan,
    dependencies=[Depends(authorize_route)],
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    expose_headers=["X-Request-ID"],
)

# Request context (added last so it wraps everything else)
app.add_middleware(RequestContextMiddleware)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

def _validation_fields(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """Group pydantic errors by dotted field path, dropping the location prefix."""
    fields: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        name = ".".join(loc) or "request"
        fields.setdefault(name, []).append(error.get("msg", "Invalid value"))
    return fields


@app.exception_handler(SecureShopError)
async def secureshop_exception_handler(
    request: Request,
    exc: SecureShopError
) -> JSONResponse:
    """Render any taxonomy error with its own status and body."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers(),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Reshape FastAPI validation errors into the validation_failed body."""
    fields = _validation_fields(exc.errors())
    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"path": request.url.path},
    )
    error = ValidationFailed(fields)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error under a fresh correlation id and returns only the id.
    """
    correlation_id = new_correlation_id()
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"correlation_id": correlation_id},
    )
    error = UnexpectedFailure(correlation_id)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle uncaught exceptions.

    Full details are logged but not exposed to the client.
    """
    correlation_id = new_correlation_id()
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"correlation_id": correlation_id},
    )
    error = UnexpectedFailure(correlation_id)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

# Observability (health, metrics)
include_router(app, observability_router)

# Authentication
include_router(app, auth_router, prefix=API_PREFIX)

# Product Catalog
include_router(app, products_router, prefix=API_PREFIX)
include_router(app, admin_products_router, prefix=API_PREFIX)

# Orders
include_router(app, orders_router, prefix=API_PREFIX)
include_router(app, admin_orders_router, prefix=API_PREFIX)

# User Administration
include_router(app, users_router, prefix=API_PREFIX)

# Redirects
include_router(app, redirect_router, prefix=API_PREFIX)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get("/", include_in_schema=False)
async def root() -> Dict[str, Any]:
    """Root endpoint - API information."""
    return {
        "name": "SecureShop API",
        "version": "0.1.0",
        "status": "running",
        "docs": "/docs" if DOCS_ENABLED else None,
    }


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
