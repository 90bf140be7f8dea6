"""Dashboard API entry point (port 3000)."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from scalardb_setup.api.routes import dashboard, export, medical
from scalardb_setup.config import settings
from scalardb_setup.core.log_setup import configure_logging
from scalardb_setup.db.database import engine
from scalardb_setup.db.exceptions import DatabaseError
from scalardb_setup.middleware.rate_limiter import limiter, rate_limit_exceeded_handler
from scalardb_setup.middleware.request_id import RequestIDMiddleware
from scalardb_setup.middleware.security_headers import SecurityHeadersMiddleware

logger = logging.getLogger(__name__)

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - disposes the connection pool on shutdown."""
    logger.info("ScalarDB Dashboard ready on port %d", settings.dashboard_port)
    yield
    await engine.dispose()

app = FastAPI(
    title="ScalarDB Dashboard API",
    description="Read-only views over the ScalarDB sample schema",
    version="0.1.0",
    docs_url="/docs" if settings.dev_mode else None,
    redoc_url="/redoc" if settings.dev_mode else None,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.state.limiter = limiter
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

# ---------------------------------------------------------------------------
# Exception handlers: dashboard errors are {"error": message}
# ---------------------------------------------------------------------------

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(StarletteHTTPException)
async def _http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


@app.exception_handler(RequestValidationError)
async def _validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = f"Invalid {field}: {first.get('msg', 'invalid value')}" if field else "Invalid request"
    return JSONResponse(status_code=422, content={"error": message})


@app.exception_handler(DatabaseError)
async def _database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Request-ID"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(dashboard.router, tags=["dashboard"])
app.include_router(export.router, prefix="/api/export", tags=["export"])
app.include_router(medical.router, prefix="/api/medical", tags=["medical"])
